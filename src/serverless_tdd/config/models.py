from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

# Typed views over serverless.yml. Service-level models keep unknown keys because
# serverless.yml carries far more than this plugin reads; the plugin section is strict.

PLUGIN_SECTION = "serverless-tdd-plugin"


def _stringify_environment(value: object) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError("environment must be a mapping")
    result: dict[str, str] = {}
    for key, item in value.items():
        if isinstance(item, bool):
            result[str(key)] = "true" if item else "false"
        elif item is None:
            result[str(key)] = ""
        else:
            result[str(key)] = str(item)
    return result


class FunctionDefinition(BaseModel):
    model_config = ConfigDict(extra="allow")
    name: str = ""
    handler: str | None = None
    environment: dict[str, str] = Field(default_factory=dict)
    events: list[Any] = Field(default_factory=list)

    @field_validator("environment", mode="before")
    @classmethod
    def _coerce_environment(cls, value: object) -> dict[str, str]:
        return _stringify_environment(value)

    @field_validator("events", mode="before")
    @classmethod
    def _coerce_events(cls, value: object) -> object:
        return [] if value is None else value


class ProviderConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    name: str = "aws"
    runtime: str | None = None
    stage: str = "dev"
    region: str = "us-east-1"
    environment: dict[str, str] = Field(default_factory=dict)

    @field_validator("environment", mode="before")
    @classmethod
    def _coerce_environment(cls, value: object) -> dict[str, str]:
        return _stringify_environment(value)


class PluginConfig(BaseModel):
    # custom.serverless-tdd-plugin section.
    model_config = ConfigDict(extra="forbid", populate_by_name=True)
    test_framework: str | None = Field(
        default=None, validation_alias=AliasChoices("testFramework", "test_framework")
    )
    test_template: str | None = Field(
        default=None, validation_alias=AliasChoices("testTemplate", "test_template")
    )
    function_template: str | None = Field(
        default=None, validation_alias=AliasChoices("functionTemplate", "function_template")
    )
    pre_test_commands: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("preTestCommands", "pre_test_commands")
    )
    post_test_commands: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("postTestCommands", "post_test_commands")
    )
    test_framework_settings: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("testFrameworkSettings", "test_framework_settings"),
    )
    log_path: str | None = Field(default=None, validation_alias=AliasChoices("logPath", "log_path"))

    @field_validator("pre_test_commands", "post_test_commands", mode="before")
    @classmethod
    def _coerce_commands(cls, value: object) -> object:
        # A single command may be written as a plain string.
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


class ServiceConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    service: str
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    functions: dict[str, FunctionDefinition] = Field(default_factory=dict)
    custom: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: object) -> object:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        service = data.get("service")
        # Older serverless.yml files declare `service: {name: ...}`.
        if isinstance(service, dict):
            data["service"] = service.get("name")
        functions = data.get("functions")
        if functions is None:
            data["functions"] = {}
        elif isinstance(functions, dict):
            named: dict[str, object] = {}
            for name, entry in functions.items():
                entry = {} if entry is None else entry
                if isinstance(entry, dict):
                    entry = {**entry, "name": str(name)}
                named[str(name)] = entry
            data["functions"] = named
        if data.get("custom") is None:
            data["custom"] = {}
        if data.get("provider") is None:
            data["provider"] = {}
        return data

    @property
    def plugin_config(self) -> PluginConfig:
        return PluginConfig.model_validate(self.custom.get(PLUGIN_SECTION) or {})
