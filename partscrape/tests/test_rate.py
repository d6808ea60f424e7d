"""Tests for the fixed-delay rate governor."""
import pytest

from partscrape.rate import DETAIL, GROUP, LISTING, RateGovernor


class TestRateGovernor:

    def test_each_site_has_its_own_delay(self):
        slept = []
        governor = RateGovernor(listing=0.1, detail=0.5, group=0.2, sleep=slept.append)

        governor.pause(DETAIL)
        governor.pause(LISTING)
        governor.pause(GROUP)
        governor.pause(DETAIL)

        assert slept == [0.5, 0.1, 0.2, 0.5]
        assert governor.total_slept == pytest.approx(1.3)

    def test_delays_do_not_adapt(self):
        slept = []
        governor = RateGovernor(detail=0.5, sleep=slept.append)

        for _ in range(5):
            governor.pause(DETAIL)

        assert set(slept) == {0.5}

    def test_disabled_never_sleeps(self):
        governor = RateGovernor.disabled()

        governor.pause(DETAIL)

        assert governor.total_slept == 0

    def test_unknown_site(self):
        with pytest.raises(ValueError):
            RateGovernor.disabled().pause("checkout")

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            RateGovernor(detail=-1)
