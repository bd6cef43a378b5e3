"""Persistence of the installation state across process restarts."""

import logging

from pydantic import ValidationError

from unitemplate.config.schemas import InstallationState
from unitemplate.host.base import PreferenceStore

logger = logging.getLogger(__name__)

PREF_KEY_INSTALL_STATE = "UnityTemplate_InstallState"
PREF_KEY_FULL_SETUP = "UnityTemplate_FullSetupInProgress"


class InstallStateStore:
    """Reads and writes the InstallationState blob and the Full Setup flag.

    The blob is always read whole and overwritten whole; there is a single
    writer (the scheduler thread), so no locking is needed.
    """

    def __init__(self, prefs: PreferenceStore) -> None:
        self._prefs = prefs

    def save(self, state: InstallationState) -> None:
        """Overwrite the persisted snapshot."""
        self._prefs.set_string(PREF_KEY_INSTALL_STATE, state.to_json())
        logger.debug(
            "Saved install state: %d remaining of %d",
            len(state.remaining_packages),
            state.total_packages,
        )

    def load(self) -> InstallationState | None:
        """Read the persisted snapshot.

        Returns:
            The snapshot, or None if nothing is stored. A corrupt snapshot is
            cleared and treated as absent.
        """
        raw = self._prefs.get_string(PREF_KEY_INSTALL_STATE, "")
        if not raw:
            return None

        try:
            return InstallationState.from_json(raw)
        except ValidationError as e:
            logger.error("Failed to restore installation state: %s", e)
            self.clear()
            return None

    def clear(self) -> None:
        """Delete the persisted snapshot."""
        self._prefs.delete_key(PREF_KEY_INSTALL_STATE)

    @property
    def full_setup_in_progress(self) -> bool:
        """Whether a Full Setup run is waiting for its continuation."""
        return self._prefs.get_bool(PREF_KEY_FULL_SETUP, False)

    @full_setup_in_progress.setter
    def full_setup_in_progress(self, value: bool) -> None:
        if value:
            self._prefs.set_bool(PREF_KEY_FULL_SETUP, True)
        else:
            self._prefs.delete_key(PREF_KEY_FULL_SETUP)
