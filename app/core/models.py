"""
Core base model.

Base Classes:
    BaseModel: Abstract model with timestamps (created_at, updated_at)

For UUIDPrimaryKeyMixin see core.model_mixins.

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin

    class Payment(UUIDPrimaryKeyMixin, BaseModel):
        amount_cents = models.PositiveBigIntegerField()
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """
    Abstract base model providing creation and modification timestamps.

    Note:
        Always list mixins before BaseModel in inheritance.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self.pk})"
