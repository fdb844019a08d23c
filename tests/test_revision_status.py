"""
Tests for the revision status bitmask
"""
import pytest

from models.status import (
    MODERATOR_FLAGS,
    USER_FLAGS,
    RevisionStatus,
    is_alpha,
    is_approved,
    is_beta,
    is_dfsg_compliant,
    is_featured,
    is_invisible,
    is_latest,
    is_release_candidate,
    is_texture_power_of_two,
)


class TestRevisionStatus:
    """The persisted bit values never change"""

    @pytest.mark.parametrize("flag,value", [
        (RevisionStatus.APPROVED, 1),
        (RevisionStatus.ALPHA, 2),
        (RevisionStatus.BETA, 4),
        (RevisionStatus.RC, 8),
        (RevisionStatus.INVISIBLE, 16),
        (RevisionStatus.DFSG, 32),
        (RevisionStatus.FEATURED, 64),
        (RevisionStatus.LATEST, 128),
        (RevisionStatus.TEX_NOT_POWER_OF_2, 256),
    ])
    def test_bit_values(self, flag, value):
        assert int(flag) == value

    def test_flag_groups_are_disjoint(self):
        assert not USER_FLAGS & MODERATOR_FLAGS
        assert not (USER_FLAGS | MODERATOR_FLAGS) & RevisionStatus.LATEST

    def test_predicates(self):
        status = int(RevisionStatus.APPROVED | RevisionStatus.BETA | RevisionStatus.LATEST)

        assert is_approved(status)
        assert is_beta(status)
        assert is_latest(status)
        assert not is_alpha(status)
        assert not is_release_candidate(status)
        assert not is_invisible(status)
        assert not is_dfsg_compliant(status)
        assert not is_featured(status)

    def test_texture_flag_is_inverted(self):
        assert is_texture_power_of_two(0)
        assert not is_texture_power_of_two(RevisionStatus.TEX_NOT_POWER_OF_2)

    def test_none_status(self):
        assert not is_latest(None)
        assert is_texture_power_of_two(None)
