import copy

from conftest import GRAPHQL_ORDER, REST_ORDER
from policies.ownership import contact_phones, verify_ownership


def test_no_candidates_is_not_found():
    result = verify_ownership([], "9876543210")
    assert result.outcome == "not_found"
    assert result.order is None


def test_shipping_phone_match():
    result = verify_ownership([REST_ORDER], "+91 98765 43210")
    assert result.matched
    assert result.order["name"] == "#1001"


def test_customer_phone_match_only():
    order = copy.deepcopy(GRAPHQL_ORDER)
    order["shippingAddress"]["phone"] = None
    order["customer"]["phone"] = "+1 415 555 0134"
    assert verify_ownership([order], "4155550134").matched


def test_first_matching_candidate_wins():
    other = copy.deepcopy(REST_ORDER)
    other["name"] = "#1001-A"
    other["shipping_address"]["phone"] = "1111111111"
    other["customer"]["phone"] = None
    result = verify_ownership([other, REST_ORDER], "9876543210")
    assert result.order["name"] == "#1001"


def test_wrong_phone_is_mismatch_with_masked_hints():
    order = copy.deepcopy(REST_ORDER)
    order["customer"]["phone"] = "+1 415 555 0134"
    result = verify_ownership([order], "0000000000")
    assert result.outcome == "phone_mismatch"
    assert [h[-4:] for h in result.hints] == ["3210", "0134"]
    assert all("98765" not in h for h in result.hints)


def test_duplicate_hints_collapsed():
    result = verify_ownership([REST_ORDER, REST_ORDER], "0000000000")
    # shipping 9876543210 and customer +919876543210 mask the same way
    assert len(result.hints) == 1


def test_short_phone_never_matches():
    assert verify_ownership([REST_ORDER], "43210").outcome == "phone_mismatch"


def test_contact_phones_reads_both_shapes():
    assert contact_phones(REST_ORDER) == ["9876543210", "+919876543210"]
    assert contact_phones(GRAPHQL_ORDER) == ["+91 98765 43210", "+919876543210"]
    assert contact_phones({}) == []


def test_short_stored_phone_matches_same_short_input():
    order = {"name": "#1", "shipping_address": {"phone": "43-210"}}
    assert verify_ownership([order], "43210").matched
