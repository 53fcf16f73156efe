"""Abstract models shared by the dispatch apps.

``BaseModel`` gives a UUIDv7 key and timestamps. ``RetainedModel`` adds a
``deleted_at`` tombstone for rows an admin deletes but reports still count
until the retention job purges them.
"""

from __future__ import annotations

import uuid6
from django.db import models
from django.utils import timezone


class BaseModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid6.uuid7, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        # auto_now is skipped for fields missing from update_fields.
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = [*update_fields, "updated_at"]
        super().save(*args, **kwargs)


class RetainedQuerySet(models.QuerySet):
    def alive(self) -> RetainedQuerySet:
        return self.filter(deleted_at__isnull=True)

    def hard_delete(self) -> tuple[int, dict[str, int]]:
        """Remove the rows for good, tombstoned or not."""
        return super().delete()


class RetainedModel(BaseModel):
    """Rows are tombstoned by ``delete()``; ``objects`` still returns them."""

    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    objects = RetainedQuerySet.as_manager()

    class Meta:
        abstract = True

    def delete(self, using=None, keep_parents=False) -> tuple[int, dict[str, int]]:
        if self.deleted_at is not None:
            return 0, {}
        self.deleted_at = timezone.now()
        self.save(update_fields=["deleted_at"])
        return 1, {self._meta.label: 1}
