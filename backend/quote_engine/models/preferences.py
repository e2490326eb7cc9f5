"""Interface preferences persisted between sessions."""

from pydantic import BaseModel, ConfigDict


class InterfacePreferences(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sidebar_collapsed: bool = False
    wide_mode: bool = False
