from typing import Annotated, Any, List

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return ""
    return str(value).strip()


def _to_text_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [text for text in (_to_text(item) for item in value) if text]


# Absent values become "" so consumers only ever branch on emptiness.
Text = Annotated[str, BeforeValidator(_to_text)]
TextList = Annotated[List[str], BeforeValidator(_to_text_list)]


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
