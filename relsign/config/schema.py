# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schemas for relsign.

Every config section gets its own frozen pydantic model. Frozen means once you
create it, you cannot mutate it. Config mutation at runtime is a bug.

The models use pydantic v2's ConfigDict with:
  - frozen=True: immutability after construction
  - extra="forbid": unknown fields cause immediate failure
  - validate_default=True: even defaults get type-checked

Note that no secret *value* ever lives in a config file. The `secrets` section
only names the environment variables the values are read from.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from relsign.logging.logger import VALID_LOG_LEVELS


class GlobalConfig(BaseModel):
    """
    Cross-cutting settings that apply to every command.

    This is the only required section, and it controls observability
    (log_level, log_file) and project identity.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    config_version: str = Field(
        description="Schema version for compatibility tracking, e.g. '1.0.0'"
    )
    project_name: str = Field(
        default="relsign", description="Human-readable project identifier"
    )
    log_level: str = Field(
        default="INFO",
        description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path for file-based log output",
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}")
        return upper


class SignerConfig(BaseModel):
    """
    How the external signer/verifier executable gets invoked.

    The timeout is deliberately generous. Signing a large AAB on a slow CI
    runner can take minutes, and a timeout is reported as a failure, never
    as success.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    executable: str = Field(
        default="jarsigner",
        description="Name or path of the jarsigner executable",
    )
    timeout_seconds: int = Field(
        default=600,
        ge=1,
        le=7200,
        description="Max seconds to wait for a single sign or verify invocation",
    )
    signature_algorithm: str = Field(
        default="SHA256withRSA",
        description="Passed to jarsigner as -sigalg",
    )
    digest_algorithm: str = Field(
        default="SHA-256",
        description="Passed to jarsigner as -digestalg",
    )
    tsa_url: Optional[str] = Field(
        default=None,
        description="Optional timestamp authority URL, passed as -tsa",
    )


class SecretsConfig(BaseModel):
    """Names of the environment variables that carry signing secrets."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    keystore_base64_env: str = Field(
        default="RELSIGN_KEYSTORE_B64",
        description="Base64-encoded keystore bytes",
    )
    keystore_path_env: str = Field(
        default="RELSIGN_KEYSTORE_PATH",
        description="Path to a keystore already on disk (used when no base64 value is set)",
    )
    alias_env: str = Field(
        default="RELSIGN_KEY_ALIAS",
        description="Alias of the signing key inside the keystore",
    )
    store_password_env: str = Field(
        default="RELSIGN_STORE_PASSWORD",
        description="Keystore password",
    )
    key_password_env: str = Field(
        default="RELSIGN_KEY_PASSWORD",
        description="Key password, defaults to the keystore password when unset",
    )


class RelsignConfig(BaseModel):
    """
    Top-level config container.

    Only `global:` is required. `signer:` and `secrets:` fall back to their
    defaults, which match a stock JDK jarsigner and the documented variable
    names.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    global_config: GlobalConfig = Field(alias="global")
    signer: SignerConfig = Field(default_factory=SignerConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)
