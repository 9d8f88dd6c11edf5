"""
Article value object handed over by the content side of the product.
"""
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from narrator.services.ssml_converter import html_to_plain_text


class Article(BaseModel):
    """An article to narrate. ``plain_text`` is derived from ``content`` when omitted."""
    id: str = Field(..., min_length=1, description='Article identifier')
    title: Optional[str] = None
    content: str = Field('', description='Article body as HTML')
    plain_text: Optional[str] = Field(None, description='Plain-text rendering of the body')
    user_id: Optional[str] = None

    @model_validator(mode='after')
    def fill_plain_text(self) -> 'Article':
        if self.plain_text is None:
            self.plain_text = html_to_plain_text(self.content)
        return self
