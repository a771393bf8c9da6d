"""
Sweep scheduling rules.

Decides when the registry-wide re-accrual pass runs and which accounts it
touches. Holds no state of its own; the registry timestamps are passed in.
"""

from accrual.constants import DEFAULT_SWEEP_INTERVAL_SECONDS


class SweepScheduler:
    """Gates the periodic sweep on elapsed chain time."""

    def __init__(self, interval_seconds: int = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
        """
        Initialize scheduler.

        Args:
            interval_seconds: Minimum seconds between sweeps, and between
                two snapshots of the same account taken by a sweep

        Raises:
            ValueError: If interval is negative
        """
        if interval_seconds < 0:
            raise ValueError(f"Sweep interval must be >= 0, got {interval_seconds}")
        self.interval_seconds = interval_seconds

    def is_sweep_due(self, last_sweep_timestamp: int, current_timestamp: int) -> bool:
        """
        Check whether the global sweep should run.

        Args:
            last_sweep_timestamp: Timestamp of the previous sweep (0 = never)
            current_timestamp: Timestamp of the batch's last block

        Returns:
            True once a full interval has passed since the previous sweep
        """
        return current_timestamp - last_sweep_timestamp >= self.interval_seconds

    def is_account_due(
        self,
        last_snapshot_timestamp: int,
        current_timestamp: int,
    ) -> bool:
        """
        Check whether an account should be re-accrued by the sweep.

        Args:
            last_snapshot_timestamp: Account's latest snapshot (0 = never)
            current_timestamp: Sweep timestamp

        Returns:
            False for never-snapshotted accounts, otherwise True once a
            full interval has passed since the account's last snapshot
        """
        if last_snapshot_timestamp == 0:
            return False

        return current_timestamp - last_snapshot_timestamp >= self.interval_seconds
