import uuid
from types import SimpleNamespace

import pytest

from storeledger.core.enums import UnitFamily
from storeledger.core.exceptions import NotFoundError, UnitIntegrityError, ValidationError
from storeledger.services import unit_conversion as uc

KG = SimpleNamespace(symbol="kg", unit_family=UnitFamily.WEIGHT, conversion_factor_to_base=1000.0)
DOZEN = SimpleNamespace(symbol="dozen", unit_family=UnitFamily.COUNT, conversion_factor_to_base=12.0)
CUP = SimpleNamespace(symbol="cup", unit_family=UnitFamily.VOLUME, conversion_factor_to_base=236.588)


def test_to_base_and_back():
    assert uc.to_base(5, KG) == 5000
    assert uc.to_presentation(5000, KG) == 5
    assert uc.to_base(0.5, DOZEN) == 6


@pytest.mark.parametrize("unit", [KG, DOZEN, CUP])
@pytest.mark.parametrize("qty", [0.001, 1.25, 7.0, 1234.5678])
def test_round_trip(unit, qty):
    assert uc.to_presentation(uc.to_base(qty, unit), unit) == pytest.approx(qty)
    assert uc.price_to_base(uc.price_to_presentation(qty, unit), unit) == pytest.approx(qty)


def test_price_scales_opposite_to_quantity():
    # 0.002 per gram is 2 per kilogram
    assert uc.price_to_presentation(0.002, KG) == pytest.approx(2.0)
    assert uc.price_to_base(2.0, KG) == pytest.approx(0.002)


@pytest.mark.parametrize("factor", [0, -1000.0, float("nan"), None])
def test_bad_factor_refused(factor):
    broken = SimpleNamespace(symbol="bad", conversion_factor_to_base=factor)
    with pytest.raises(UnitIntegrityError):
        uc.to_base(1, broken)
    with pytest.raises(UnitIntegrityError):
        uc.to_presentation(1, broken)


def test_family_mismatch():
    with pytest.raises(ValidationError) as exc:
        uc.ensure_same_family(KG, CUP)
    assert exc.value.code == "UNIT_FAMILY_MISMATCH"
    uc.ensure_same_family(KG, KG)


async def test_fetch_unit(session, world):
    unit = await uc.fetch_unit(session, world.kg.id)
    assert unit.symbol == "kg"

    with pytest.raises(NotFoundError):
        await uc.fetch_unit(session, uuid.uuid4())


async def test_fetch_base_unit(session, world):
    base = await uc.fetch_base_unit(session, UnitFamily.WEIGHT)
    assert base.symbol == "g"
    assert await uc.fetch_base_unit(session, UnitFamily.LENGTH) is None
