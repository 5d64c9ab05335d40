import re
import typing as t
import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models


class CampusUser(AbstractUser):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    preferred_name = models.CharField(db_index=True, max_length=255, blank=True, help_text="Preferred name")
    institution = models.CharField(
        max_length=255,
        blank=True,
        db_index=True,
        help_text="University or college the user belongs to",
    )
    is_organiser = models.BooleanField(default=False, help_text="Designates whether the user can publish events")

    class Meta:
        ordering = ["username"]

    @property
    def display_name(self) -> str:
        """Display name."""
        return self.get_display_name()

    def get_display_name(self) -> str:
        """Returns the user's preferred name, or their full name as a fallback."""
        return (
            self.preferred_name or self.get_full_name() or re.sub(r"(\W|_)+", " ", self.username.split("@")[0]).title()
        )

    def normalised_institution(self) -> str:
        """Institution as used for comparisons: stripped and case-folded."""
        return self.institution.strip().casefold()

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Keep the stored institution free of stray whitespace."""
        self.institution = self.institution.strip()
        super().save(*args, **kwargs)
