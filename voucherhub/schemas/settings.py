from pydantic import BaseModel
from typing import Union


class SettingsResponse(BaseModel):
    claim_enabled: bool
    daily_limit: int


class SettingUpdate(BaseModel):
    value: Union[bool, int, str]
