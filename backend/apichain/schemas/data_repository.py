"""Pydantic schemas for data repository variables."""

from typing import Annotated, Any, Literal, Union, get_args

from pydantic import Field, model_validator

from apichain.schemas.chain import CamelModel


DataVariableType = Literal[
    "string",
    "number",
    "singleDigit",
    "boolean",
    "object",
    "firstName",
    "lastName",
    "fullName",
    "email",
    "emailWithDomain",
    "staticPassword",
    "dynamicPassword",
    "phoneNumber",
    "date",
    "pastDate",
    "futureDate",
    "city",
    "state",
    "country",
    "countryCode",
    "zipCode",
    "uuid",
    "color",
    "url",
    "ipv4",
    "ipv6",
    "alphanumeric",
]

DATA_VARIABLE_TYPES: tuple[str, ...] = get_args(DataVariableType)


class EmailDomainConfig(CamelModel):
    kind: Literal["emailWithDomain"] = "emailWithDomain"
    email_domain: str = ""


class StaticPasswordConfig(CamelModel):
    kind: Literal["staticPassword"] = "staticPassword"
    static_value: str = ""


class DynamicPasswordConfig(CamelModel):
    kind: Literal["dynamicPassword"] = "dynamicPassword"
    password_length: int = Field(10, ge=4, le=256)
    special_chars: str = Field("!@#$%^&*", min_length=1)


GeneratorConfig = Annotated[
    Union[EmailDomainConfig, StaticPasswordConfig, DynamicPasswordConfig],
    Field(discriminator="kind"),
]

CONFIGURABLE_TYPES = {"emailWithDomain", "staticPassword", "dynamicPassword"}


class DataRepositoryVariable(CamelModel):
    """
    A named value configured outside a chain run.

    Static variables hold a fixed ``value``; dynamic variables produce a
    fresh value from the generator for ``type`` on every resolution.
    """
    name: str = Field(..., min_length=1)
    type: DataVariableType = "string"
    value: str = ""
    is_dynamic: bool = False
    config: GeneratorConfig | None = None

    @model_validator(mode="before")
    @classmethod
    def tag_config(cls, data: Any) -> Any:
        """Tag untagged configs (as persisted by the UI) with the variable type."""
        if not isinstance(data, dict):
            return data
        config = data.get("config")
        if isinstance(config, dict) and "kind" not in config:
            data = dict(data)
            var_type = data.get("type", "string")
            if var_type in CONFIGURABLE_TYPES:
                data["config"] = {**config, "kind": var_type}
            else:
                data["config"] = None
        return data

    @model_validator(mode="after")
    def check_config_kind(self):
        if self.config is not None and self.config.kind != self.type:
            raise ValueError(
                f"Config of kind '{self.config.kind}' does not apply to type '{self.type}'"
            )
        return self
