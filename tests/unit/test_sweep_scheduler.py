"""Tests for sweep gating rules."""

import pytest

from accrual import SweepScheduler


class TestSweepScheduler:
    """Tests for SweepScheduler."""

    @pytest.fixture
    def scheduler(self) -> SweepScheduler:
        """Create hourly scheduler."""
        return SweepScheduler(3600)

    def test_not_due_within_interval(self, scheduler: SweepScheduler) -> None:
        """Test sweep is gated until a full interval passes."""
        assert scheduler.is_sweep_due(1000, 4599) is False

    def test_due_at_interval(self, scheduler: SweepScheduler) -> None:
        """Test sweep runs exactly one interval later."""
        assert scheduler.is_sweep_due(1000, 4600) is True

    def test_never_swept_registry(self, scheduler: SweepScheduler) -> None:
        """Test a fresh registry sweeps once chain time passes the interval."""
        assert scheduler.is_sweep_due(0, 1_700_000_000) is True

    def test_replayed_timestamp_not_due(self, scheduler: SweepScheduler) -> None:
        """Test the same batch timestamp never sweeps twice."""
        assert scheduler.is_sweep_due(4600, 4600) is False

    def test_account_never_snapshotted(self, scheduler: SweepScheduler) -> None:
        """Test accounts without snapshots are never swept."""
        assert scheduler.is_account_due(0, 1_700_000_000) is False

    def test_account_recently_snapshotted(self, scheduler: SweepScheduler) -> None:
        """Test accounts touched within the interval are skipped."""
        assert scheduler.is_account_due(4000, 4600) is False

    def test_account_due(self, scheduler: SweepScheduler) -> None:
        """Test idle accounts are swept."""
        assert scheduler.is_account_due(1000, 4600) is True

    def test_negative_interval_rejected(self) -> None:
        """Test negative intervals are refused."""
        with pytest.raises(ValueError):
            SweepScheduler(-1)
