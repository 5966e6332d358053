"""
billstation/billing/capabilities.py
------------------------------------
Injected collaborators the billing core calls through.

Both are slow and may fail, so neither is imported directly by the
routes. `create_app()` registers concrete implementations under
`app.extensions['text_to_items']` / `app.extensions['image_share']`
and tests register fakes in their place.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Protocol


class ExtractionError(Exception):
    """Free text could not be turned into line items."""


class ShareError(Exception):
    """The receipt image could not be captured or handed to the share sheet."""


@dataclass(frozen=True)
class ExtractedItem:
    name:     str
    price:    Decimal
    quantity: int = 1


class TextToItems(Protocol):
    def extract(self, text: str) -> List[ExtractedItem]:
        """Parse free text into items. Raises ExtractionError."""
        ...


class ImageShare(Protocol):
    def share(self, receipt: dict, filename: str) -> None:
        """Render `receipt` as an image and share it. Raises ShareError."""
        ...
