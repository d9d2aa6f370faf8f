"""
Delivery addresses owned by users.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class Address(UUIDPrimaryKeyMixin, BaseModel):
    """
    A saved delivery address.

    Checkout either references one of the user's saved addresses or
    creates a new one from inline form fields.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="addresses",
    )
    name = models.CharField(
        max_length=255,
        help_text="Label for the address, e.g. Home or Office",
    )
    address = models.TextField()
    city = models.CharField(max_length=100)
    pincode = models.CharField(max_length=10)
    is_preferred = models.BooleanField(default=False)

    class Meta:
        ordering = ["-is_preferred", "-created_at"]
        verbose_name_plural = "addresses"

    def __str__(self) -> str:
        return f"{self.name}: {self.city} {self.pincode}"
