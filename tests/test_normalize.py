import pytest

from leadscout.etl import normalize
from leadscout.models import BusinessRecord


@pytest.mark.parametrize(
    "raw",
    ["https://www.Example.com/", "example.com", "http://example.com///", "EXAMPLE.COM/about?x=1", "www.example.com:443"],
)
def test_normalize_domain_reduces_to_label_tld(raw):
    assert normalize.normalize_domain(raw) == "example.com"


@pytest.mark.parametrize("raw", ["", None, "LLC", "   ", "not a url", 42, "http://", "localhost"])
def test_normalize_domain_garbage_is_empty(raw):
    assert normalize.normalize_domain(raw) == ""


def test_normalize_domain_keeps_registrable_part():
    assert normalize.normalize_domain("https://shop.acme.com/products") == "acme.com"
    assert normalize.normalize_domain("https://www.acme.co.uk") == "acme.co.uk"
    assert normalize.normalize_domain("info@acme.io") == "acme.io"


@pytest.mark.parametrize(
    "first, second",
    [
        ("https://www.tienda.gob.mx", "https://www.otra.gob.mx"),
        ("acme.or.jp", "zeta.or.jp"),
        ("https://alpha.com.au/contact", "beta.com.au"),
    ],
)
def test_normalize_domain_never_collapses_onto_a_public_suffix(first, second):
    assert normalize.normalize_domain(first) != normalize.normalize_domain(second)
    assert normalize.normalize_domain("acme.or.jp") == "acme.or.jp"


def test_normalize_domain_unknown_suffix_or_ip_is_empty():
    assert normalize.normalize_domain("10.0.0.1") == ""
    assert normalize.normalize_domain("acme.notarealtld") == ""


@pytest.mark.parametrize("raw", ["Acme Inc.", "ACME INC", "acme", "  Acme,  LLC ", "Acme Corporation", "Acme Co."])
def test_normalize_name_strips_trailing_entity_suffix(raw):
    assert normalize.normalize_name(raw) == "acme"


def test_normalize_name_only_strips_at_end():
    assert normalize.normalize_name("Inc Records") == "inc records"
    assert normalize.normalize_name("Company Store") == "company store"
    assert normalize.normalize_name(None) == ""


def test_normalize_address_core_removes_units_and_abbreviates():
    left = normalize.normalize_address_core("123 Main Street, Suite 200, Columbus, OH 43215")
    right = normalize.normalize_address_core("123 main st #200, Columbus, OH 43215")

    assert left == right == "123 main st, columbus, oh 43215"


@pytest.mark.parametrize(
    "raw",
    [
        "500 Oak Avenue Apt 4B, Dayton, OH",
        "500 Oak Ave., Unit 4B, Dayton, OH",
        "500 oak ave floor 3, dayton, oh",
        "500 Oak Ave Rm. 12, Dayton, OH",
    ],
)
def test_normalize_address_core_variants_converge(raw):
    assert normalize.normalize_address_core(raw) == "500 oak ave, dayton, oh"


def test_normalize_address_core_leaves_florida_zip_alone():
    assert normalize.normalize_address_core("1 Ocean Blvd, Miami, FL 33139") == "1 ocean blvd, miami, fl 33139"


def test_normalize_address_core_does_not_eat_words_starting_with_designators():
    assert normalize.normalize_address_core("9 Stevens Street, Unity, ME") == "9 stevens st, unity, me"


def test_extract_city_state():
    assert normalize.extract_city_state("123 Main St, Columbus, OH 43215, USA") == ("columbus", "oh")
    assert normalize.extract_city_state("Columbus, Ohio") == ("columbus", "ohio")


@pytest.mark.parametrize("raw", ["", None, "123 Main St", "123 Main St, 43215", "123 Main St, Columbus"])
def test_extract_city_state_needs_trailing_city_and_state(raw):
    assert normalize.extract_city_state(raw) == ("", "")


def test_normalizers_are_deterministic():
    values = ["https://www.Example.com/", "Acme Inc.", "123 Main Street Suite 5, Columbus, OH", "", None, "ß ümlaut"]
    for value in values:
        assert normalize.normalize_domain(value) == normalize.normalize_domain(value)
        assert normalize.normalize_name(value) == normalize.normalize_name(value)
        assert normalize.normalize_address_core(value) == normalize.normalize_address_core(value)


def test_normalized_key_for_record():
    record = BusinessRecord(name="Acme Inc", website="https://acme.com", location="1 Main Street, Columbus, OH")

    key = normalize.normalized_key(record)

    assert key.domain == "acme.com"
    assert key.name == "acme"
    assert key.address_core == "1 main st, columbus, oh"
