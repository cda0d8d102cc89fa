from django.db import models


class StoredCollection(models.Model):
    """One named collection serialized as JSON text.

    Rows are written whole: readers load the full payload, mutate it in
    memory and write it back. There is no locking, so concurrent writers
    race and the last one wins.
    """

    key = models.CharField(max_length=64, unique=True)
    payload = models.TextField(blank=True, default="")
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.key} ({len(self.payload)} bytes)"
