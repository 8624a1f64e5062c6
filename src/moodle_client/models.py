"""
Request and response models used by the Moodle client.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SERVICE = "moodle_mobile_app"
REST_FORMAT = "json"
SUPPORTED_METHODS = ("GET", "POST")

# CallSettings field -> protocol query field
SETTING_FIELDS = {
    "raw": "moodlewssettingraw",
    "file_url_rewrite": "moodlewssettingfileurl",
    "apply_filters": "moodlewssettingfilter",
}


# Authentication DTOs

class TokenCredentials(BaseModel):
    """A token obtained earlier, e.g. from a stored session."""
    token: str = Field(..., description="Web service token; may be empty, calls then refuse to run")


class PasswordCredentials(BaseModel):
    """Username and password exchanged for a token at /login/token.php."""
    username: str = Field(..., min_length=1, description="Moodle username")
    password: str = Field(..., min_length=1, description="Password")

    def __repr__(self) -> str:
        return f"PasswordCredentials(username={self.username!r}, password='***')"


class TokenResponse(BaseModel):
    """Successful response of the token endpoint."""
    model_config = ConfigDict(extra="ignore")

    token: str = Field(..., description="Web service token")
    privatetoken: Optional[str] = Field(None, description="Private token, only issued over https")


# Call DTOs

class CallSettings(BaseModel):
    """
    Per-call settings for a web service function.

    Only settings that are explicitly given are sent to the server; a
    setting left as None keeps the server-side default.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    method: str = Field(default="GET", description="HTTP method, GET or POST")
    raw: Optional[bool] = Field(
        None,
        description="Return raw text fields instead of running format_text() (server default False)",
    )
    file_url_rewrite: Optional[bool] = Field(
        None,
        alias="fileurl",
        description="Rewrite file URLs to webservice/pluginfile.php (server default True)",
    )
    apply_filters: Optional[bool] = Field(
        None,
        alias="filter",
        description="Apply filters during format_text() (server default False)",
    )
    verify: Optional[bool] = Field(
        None,
        description="Override TLS certificate verification for this call only",
    )

    @property
    def normalized_method(self) -> str:
        return self.method.upper()

    def protocol_fields(self) -> Dict[str, Any]:
        """Map explicitly set settings to their moodlewssetting* fields."""
        return {
            SETTING_FIELDS[name]: value
            for name, value in self.model_dump(include=set(SETTING_FIELDS)).items()
            if value is not None
        }
