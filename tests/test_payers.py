import pytest

from snfkpi.core.payers import is_skilled_payer, normalize_payer_category
from snfkpi.core.types import PayerCategory


@pytest.mark.parametrize("label,expected", [
    ("Medicare A", PayerCategory.MEDICARE_A),
    ("MEDICARE_A", PayerCategory.MEDICARE_A),
    ("  hmo ", PayerCategory.MEDICARE_ADVANTAGE),
    ("Medicaid Pending", PayerCategory.MEDICAID),
    ("Private_Pay", PayerCategory.PRIVATE_PAY),
    ("I-SNP", PayerCategory.ISNP),
])
def test_known_labels(label, expected):
    assert normalize_payer_category(label) is expected


@pytest.mark.parametrize("label", [None, "", "   ", "Workers Comp"])
def test_unknown_labels_are_none(label):
    assert normalize_payer_category(label) is None


def test_custom_aliases():
    aliases = {"Workers Comp": "COMMERCIAL"}

    assert normalize_payer_category("workers comp", aliases) is PayerCategory.COMMERCIAL
    assert normalize_payer_category("Medicare A", aliases) is PayerCategory.MEDICARE_A


def test_enum_passes_through():
    assert normalize_payer_category(PayerCategory.VA) is PayerCategory.VA


def test_skilled_payers():
    assert is_skilled_payer(PayerCategory.MEDICARE_A)
    assert is_skilled_payer(PayerCategory.ISNP)
    assert not is_skilled_payer(PayerCategory.MEDICAID)
    assert not is_skilled_payer(PayerCategory.MANAGED_CARE)
    assert not is_skilled_payer(None)
