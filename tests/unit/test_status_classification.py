"""
Tests for the reconciliation status rule.

The same rule drives the arrivals table, the header stats, bulk checks and the
CSV export, so it is pinned down here case by case.
"""

from __future__ import annotations

import pytest

from customsops.reconciliation.status import (
    ShipmentStatus,
    classify_arrival,
    classify_status,
    coerce_saldo,
    outbounds_count,
    saldo_label,
)


class TestClassifyStatus:
    @pytest.mark.parametrize("outbounds", [0, 1, 5])
    def test_zero_saldo_is_complete_regardless_of_outbounds(self, outbounds):
        assert classify_status(0, outbounds) is ShipmentStatus.COMPLETE

    @pytest.mark.parametrize("saldo", [3, -2, 0.5])
    def test_nonzero_saldo_with_outbounds_is_error(self, saldo):
        assert classify_status(saldo, 2) is ShipmentStatus.ERROR

    @pytest.mark.parametrize("saldo", [7, -1])
    def test_nonzero_saldo_without_outbounds_is_waiting(self, saldo):
        assert classify_status(saldo, 0) is ShipmentStatus.WAITING

    def test_missing_saldo_is_unknown(self):
        assert classify_status(None, 0) is ShipmentStatus.UNKNOWN
        assert classify_status(None, 3) is ShipmentStatus.UNKNOWN

    def test_numeric_string_saldo_is_parsed(self):
        assert classify_status("0", 1) is ShipmentStatus.COMPLETE
        assert classify_status(" 12 ", 0) is ShipmentStatus.WAITING

    def test_garbage_saldo_is_unknown(self):
        assert classify_status("n/a", 1) is ShipmentStatus.UNKNOWN
        assert classify_status(True, 1) is ShipmentStatus.UNKNOWN

    def test_labels(self):
        assert ShipmentStatus.COMPLETE.label == "Complete"
        assert ShipmentStatus.ERROR.label == "Error"
        assert ShipmentStatus.WAITING.label == "Waiting for Outbounds"
        assert ShipmentStatus.UNKNOWN.label == "Unknown"

    def test_status_serializes_as_plain_string(self):
        assert ShipmentStatus.WAITING == "waiting"


class TestArrivalHelpers:
    def test_outbounds_count_ignores_non_lists(self):
        assert outbounds_count({"Outbounds": [{}, {}]}) == 2
        assert outbounds_count({"Outbounds": None}) == 0
        assert outbounds_count({}) == 0

    def test_classify_arrival_reads_saldo_and_outbounds(self, sample_arrivals):
        statuses = [classify_arrival(a) for a in sample_arrivals]
        assert statuses == [
            ShipmentStatus.COMPLETE,
            ShipmentStatus.ERROR,
            ShipmentStatus.WAITING,
            ShipmentStatus.UNKNOWN,
        ]

    def test_coerce_saldo(self):
        assert coerce_saldo(4) == 4
        assert coerce_saldo("2.5") == 2.5
        assert coerce_saldo("") is None
        assert coerce_saldo([1]) is None

    def test_saldo_label(self):
        assert saldo_label(0) == "Complete"
        assert saldo_label(3) == "Incomplete"
        assert saldo_label(-3) is None
        assert saldo_label(None) is None
