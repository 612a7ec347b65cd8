"""
BillingSetting model: the key/value store behind BillingConfig.
"""

from django.db import models

from core.models import BaseModel


class BillingSetting(BaseModel):
    """
    A single billing configuration entry.

    Values are stored as text and parsed by billing.config when a batch run
    takes its snapshot.
    """

    key = models.CharField(max_length=100, unique=True)
    value = models.TextField(blank=True, default="")
    description = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["key"]
        verbose_name = "Billing Setting"
        verbose_name_plural = "Billing Settings"

    def __str__(self) -> str:
        return f"{self.key}={self.value}"
