"""
Model mixins for Django models.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key
"""

from __future__ import annotations

import uuid

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use a UUID primary key instead of an auto-increment integer.

    The id is generated client-side, so it is set before the first save;
    use self._state.adding, not self.pk, to tell inserts from updates.

    Usage:
        class Subscriber(UUIDPrimaryKeyMixin, BaseModel):
            first_name = models.CharField(max_length=100)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True
