"""Tests for the closed wheel-configuration registry."""

import pytest

from tire_kernel.domain.positions import (
    POSITION_TEMPLATES,
    WheelConfiguration,
    parse_configuration,
    slots_for,
)
from tire_kernel.exceptions import UnknownWheelConfigurationError, ValidationError


class TestWheelConfigurations:

    def test_four_by_two_slots(self):
        assert [s.code for s in slots_for("4x2")] == ["FL", "FR", "R1L", "R1R"]

    def test_six_by_four_has_duals(self):
        slots = slots_for(WheelConfiguration.SIX_BY_FOUR)
        assert len(slots) == 10
        assert [s.code for s in slots if s.axle == 2] == ["R1LO", "R1LI", "R1RI", "R1RO"]

    def test_trailer_slots_flagged(self):
        slots = slots_for("trailer_3axle")
        assert len(slots) == 6
        assert all(s.is_trailer for s in slots)

    def test_steer_axle_not_trailer(self):
        assert not any(s.is_trailer for s in slots_for("6x2"))

    @pytest.mark.parametrize("configuration", list(WheelConfiguration))
    def test_codes_unique_within_template(self, configuration):
        codes = [s.code for s in POSITION_TEMPLATES[configuration]]
        assert len(codes) == len(set(codes))

    def test_every_member_has_a_template(self):
        assert set(POSITION_TEMPLATES) == set(WheelConfiguration)

    def test_unknown_configuration_rejected(self):
        with pytest.raises(UnknownWheelConfigurationError) as exc_info:
            parse_configuration("8x4")
        assert isinstance(exc_info.value, ValidationError)

    def test_member_passes_through(self):
        assert parse_configuration(WheelConfiguration.FOUR_BY_TWO) is WheelConfiguration.FOUR_BY_TWO
