"""
billstation/extraction/groq_client.py
--------------------------------------
TextToItems backed by a Groq chat-completion model in JSON mode.

The model is asked for {"items": [{"name", "price", "quantity"}]}; the
reply is validated with pydantic before anything reaches the cart, so a
malformed answer surfaces as ExtractionError instead of bad line items.
"""
from decimal import Decimal
from typing import Annotated, List

from groq import Groq
from pydantic import BaseModel, Field, StringConstraints, ValidationError

from billstation.billing.capabilities import ExtractedItem, ExtractionError
from billstation.billing.validators import MAX_PRICE_EXPONENT, MAX_QUANTITY


EXTRACTION_PROMPT = (
    'Extract billing items from the following text: "{text}". '
    'Return the items with their name, unit price, and quantity. '
    'If quantity is not specified, assume 1. '
    'Prices should be numbers. '
    'Respond with JSON only, shaped as '
    '{{"items": [{{"name": string, "price": number, "quantity": number}}]}}.'
)


class ItemSchema(BaseModel):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
    price: float = Field(ge=0, lt=10 ** (MAX_PRICE_EXPONENT + 1))
    quantity: float = Field(default=1, gt=0, le=MAX_QUANTITY)


class ExtractionSchema(BaseModel):
    items: List[ItemSchema] = Field(default_factory=list)


class GroqTextToItems:
    """Calls Groq; `client` may be any object with the Groq chat API."""

    def __init__(self, api_key: str = None, model: str = 'llama-3.3-70b-versatile', client=None):
        self.client = client or Groq(api_key=api_key)
        self.model = model

    def extract(self, text: str) -> List[ExtractedItem]:
        if not text or not text.strip():
            raise ExtractionError('Nothing to extract.')

        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                response_format={"type": "json_object"},
                messages=[
                    {
                        "role": "user",
                        "content": EXTRACTION_PROMPT.format(text=text.strip()),
                    }
                ],
                temperature=0,
            )
        except Exception as e:
            raise ExtractionError(f'Extraction service failed: {e}') from e

        content = completion.choices[0].message.content or '{"items": []}'
        try:
            result = ExtractionSchema.model_validate_json(content)
        except ValidationError as e:
            raise ExtractionError(f'Could not read extraction result: {e}') from e

        if not result.items:
            raise ExtractionError('No items found in the text.')

        return [
            ExtractedItem(
                name=it.name,
                price=Decimal(str(it.price)),
                quantity=max(1, int(round(it.quantity))),
            )
            for it in result.items
        ]
