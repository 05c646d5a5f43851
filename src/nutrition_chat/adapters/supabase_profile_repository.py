"""Supabase repository for the user profile."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from nutrition_chat.services.actions import ProfileRepository


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation storing profile fields as one JSON document."""

    client: Client
    profile_id: str

    def get_profile(self) -> dict[str, object]:
        """Return the stored profile fields."""
        response = (
            self.client.table("user_profiles")
            .select("data")
            .eq("profile_id", self.profile_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return {}
        return dict(response.data[0].get("data") or {})

    def update_profile(self, updates: dict[str, object]) -> dict[str, object]:
        """Merge updates into the profile and return it."""
        profile = {**self.get_profile(), **updates}
        self.client.table("user_profiles").upsert(
            {
                "profile_id": self.profile_id,
                "data": profile,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="profile_id",
        ).execute()
        return profile
