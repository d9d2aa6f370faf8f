"""
Abstract base model with creation and modification timestamps.

Every order, checkout, payment and reconciliation table extends BaseModel,
usually together with core.model_mixins.UUIDPrimaryKeyMixin.
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """
    Adds created_at and updated_at.

    Saves that pass update_fields must include "updated_at" for the
    timestamp to move.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="When this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self.pk})"
