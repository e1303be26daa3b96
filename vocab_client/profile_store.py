"""
Local copy of the user's display profile.
"""
from dataclasses import replace
from typing import Any, Dict, Optional

from vocab_client.models import UserProfile, utc_now
from vocab_client.storage import NamespacedStore


class ProfileStore(NamespacedStore[UserProfile]):
    base_key = "UserProfileStore.v1"

    def _empty(self) -> UserProfile:
        return UserProfile()

    def _decode(self, raw: Any) -> UserProfile:
        return UserProfile.from_dict(raw)

    def _encode(self, state: UserProfile) -> Dict[str, Any]:
        return state.to_dict()

    @property
    def profile(self) -> UserProfile:
        return self._state

    def update(self, display_name: Optional[str] = None, avatar_emoji: Optional[str] = None) -> UserProfile:
        """Change name and/or emoji; blank values are ignored."""
        changes: Dict[str, Any] = {}
        if display_name and display_name.strip():
            changes["display_name"] = display_name.strip()[:60]
        if avatar_emoji and avatar_emoji.strip():
            changes["avatar_emoji"] = avatar_emoji.strip()[:8]
        if not changes:
            return self._state
        return self.set_profile(replace(self._state, updated_at=utc_now(), **changes))

    def set_profile(self, profile: UserProfile) -> UserProfile:
        # Frozen dataclass: swap the whole value, then persist
        self._state = profile
        self._persist()
        return profile
