"""
Abstract model mixins.

    UUIDPrimaryKeyMixin: UUID primary key
    MetadataMixin: free-form JSON metadata

List mixins before BaseModel:

    class PaymentTransaction(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
        ...
"""

import uuid

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    UUID primary key.

    Order and transaction ids are shown to browsers and payment
    providers, so they must not reveal record counts.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class MetadataMixin(models.Model):
    # Queried with metadata__has_key, e.g. the retry_of marker on transactions
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Free-form key-value metadata",
    )

    class Meta:
        abstract = True
