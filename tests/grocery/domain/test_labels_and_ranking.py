"""Tests for presentation labels and substitute ranking."""

import pytest
from grocery.order.labels import CUSTOMER_LABELS, customer_label, labels_for, rider_label
from grocery.order.state_machine import OrderStatus
from grocery.substitution.ranking import match_score, rank_alternatives


class TestCustomerLabels:
    def test_every_status_has_a_customer_label(self):
        assert set(CUSTOMER_LABELS) == set(OrderStatus)

    @pytest.mark.parametrize(
        "status, label",
        [
            ("Placed", "pending"),
            ("Vendor_Accepted", "confirmed"),
            ("Picking", "preparing"),
            ("Picked_Complete", "ready"),
            ("In_Transit", "picked"),
            ("Delivered", "delivered"),
            ("Vendor_Rejected", "cancelled"),
        ],
    )
    def test_customer_vocabulary(self, status, label):
        assert customer_label(status) == label


class TestRiderLabels:
    def test_rider_sees_nothing_before_picking(self):
        assert rider_label(OrderStatus.PLACED) is None
        assert rider_label(OrderStatus.PICKER_ASSIGNED) is None

    def test_rider_vocabulary(self):
        assert rider_label("Picked_Complete") == "pending-pickup"
        assert rider_label("Rider_Assigned") == "picking-up"
        assert rider_label("In_Transit") == "in-transit"
        assert rider_label("Delivered") == "delivered"

    def test_labels_for_combines_both_views(self):
        assert labels_for("In_Transit") == {"customer": "picked", "rider": "in-transit"}

    def test_unknown_status_is_rejected(self):
        with pytest.raises(ValueError):
            customer_label("Lost")


class TestMatchScore:
    def test_same_price_and_unit_scores_one(self):
        assert match_score({"unit_price": 4.0, "unit": "kg"}, {"unit_price": 4.0, "unit": "KG"}) == 1.0

    def test_different_unit_loses_the_unit_weight(self):
        assert match_score({"unit_price": 4.0, "unit": "kg"}, {"unit_price": 4.0, "unit": "bag"}) == 0.7

    def test_price_distance_lowers_the_score(self):
        close = match_score({"unit_price": 4.0, "unit": "kg"}, {"unit_price": 4.4, "unit": "kg"})
        far = match_score({"unit_price": 4.0, "unit": "kg"}, {"unit_price": 8.0, "unit": "kg"})
        assert close > far
        assert far == 0.3


class TestRankAlternatives:
    def test_best_match_first_with_ids(self):
        original = {"unit_price": 4.0, "unit": "kg"}
        ranked = rank_alternatives(
            original,
            [
                {"product_id": "far", "unit_price": 9.0, "unit": "bag"},
                {"product_id": "near", "unit_price": 4.0, "unit": "kg"},
            ],
        )
        assert [a["product_id"] for a in ranked] == ["near", "far"]
        assert all(a["alternative_id"] for a in ranked)
        assert len({a["alternative_id"] for a in ranked}) == 2

    def test_supplied_scores_are_clamped(self):
        ranked = rank_alternatives({}, [{"product_id": "x", "match_score": 3}, {"product_id": "y", "match_score": -1}])
        assert [a["match_score"] for a in ranked] == [1.0, 0.0]

    def test_empty_candidates(self):
        assert rank_alternatives({"unit_price": 1.0}, []) == []
