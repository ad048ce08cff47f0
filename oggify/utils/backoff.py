"""
Escalating penalty delay applied when the remote service denies decryption keys.
"""

import logging

from oggify.exceptions import PenaltyCeilingError

log = logging.getLogger(__name__)


class PenaltyBackoff:
    """
    Per-run retry state for the key-denied failure class.

    Every denial adds `step` seconds to the delay. A successful download resets
    it to zero. Once the delay would exceed `ceiling`, the run is aborted since
    the service is treating the session as abusive.
    """

    def __init__(self, step: float = 60.0, ceiling: float = 300.0):
        """
        Args:
            step: Seconds added to the delay for each denial.
            ceiling: Largest delay that is still waited out.
        """
        self.step = step
        self.ceiling = ceiling
        self._delay = 0.0

    @property
    def delay(self) -> float:
        """Current penalty delay in seconds."""
        return self._delay

    def on_key_denied(self) -> float:
        """
        Escalates the delay and returns how long to wait before retrying.

        Raises:
            PenaltyCeilingError: If the escalated delay exceeds the ceiling.
        """
        self._delay += self.step
        if self._delay > self.ceiling:
            raise PenaltyCeilingError(
                f"Penalty delay reached {self._delay:.0f}s (limit "
                f"{self.ceiling:.0f}s). We cannot delay anymore, exiting."
            )
        return self._delay

    def reset(self) -> None:
        if self._delay:
            log.debug(f"Penalty delay reset from {self._delay:.0f}s")
        self._delay = 0.0
