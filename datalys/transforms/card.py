# ==============================
# Card
# ==============================
from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict

from datalys.contracts.document_schema import VisualBase


class CardConfig(VisualBase):
    type: Literal["card"] = "card"
    text: Any = None


class CardModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    text: str = ""


def build_card(config: CardConfig, texts: Dict[str, str]) -> CardModel:
    """Cards carry no derived data; their text is whatever the templates rendered."""
    return CardModel(title=texts.get("title") or None, text=texts.get("text", ""))
