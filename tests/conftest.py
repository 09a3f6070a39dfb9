# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for relsign tests.

Fixtures here are available to every test file automatically. Besides config
files and build directories, this provides:

  - stub_signer / stub_verifier: in-process test doubles for the adapter
    interfaces, with canned outcomes and a call log
  - fake_jarsigner: an executable script that behaves like jarsigner closely
    enough for the real adapters (and the CLI) to run against it. Its
    behaviour is steered through FAKE_JARSIGNER_* environment variables.
"""

import os
import stat
import sys
import textwrap
from collections.abc import Iterator
from pathlib import Path
from typing import Optional

import pytest
from pydantic import SecretStr

from relsign.logging.logger import clear_registered_secrets
from relsign.release.errors import ReleaseError
from relsign.release.interfaces import Signer, Verifier
from relsign.release.models import ArtifactKind, KeystoreReference, PipelineRequest, SigningResult

STORE_PASSWORD = "store-pass-1234"
KEY_PASSWORD = "key-pass-5678"
KEY_ALIAS = "upload"


class StubSigner(Signer):
    """Signs by appending a marker to the file, or raises a canned error."""

    def __init__(self, error: Optional[ReleaseError] = None) -> None:
        self.error = error
        self.calls: list[Path] = []

    def sign(self, path: Path, keystore: KeystoreReference) -> Path:
        self.calls.append(path)
        if self.error is not None:
            raise self.error
        with open(path, "ab") as f:
            f.write(b"\nSIGNATURE-BLOCK")
        return path


class StubVerifier(Verifier):
    """Returns a canned verification outcome."""

    def __init__(
        self,
        verified: bool = True,
        warnings: tuple[str, ...] = (),
        error: Optional[ReleaseError] = None,
    ) -> None:
        self.verified = verified
        self.warnings = warnings
        self.error = error
        self.calls: list[Path] = []

    def verify(self, path: Path) -> SigningResult:
        self.calls.append(path)
        if self.error is not None:
            raise self.error
        return SigningResult(
            input_path=path,
            output_path=path,
            signature_algorithm="SHA256withRSA",
            digest_algorithm="SHA-256",
            verified=self.verified,
            warnings=self.warnings,
        )


@pytest.fixture(autouse=True)
def _forget_secrets() -> Iterator[None]:
    yield
    clear_registered_secrets()


@pytest.fixture()
def stub_signer() -> type[StubSigner]:
    return StubSigner


@pytest.fixture()
def stub_verifier() -> type[StubVerifier]:
    return StubVerifier


@pytest.fixture()
def build_dir(tmp_path: Path) -> Path:
    """A build output directory holding one unsigned release APK."""
    directory = tmp_path / "bin"
    directory.mkdir()
    (directory / "app-release-unsigned.apk").write_bytes(b"PK\x03\x04 fake apk")
    return directory


@pytest.fixture()
def keystore_file(tmp_path: Path) -> Path:
    path = tmp_path / "release.jks"
    path.write_bytes(b"\xfe\xed\xfe\xed fake keystore")
    return path


@pytest.fixture()
def keystore_ref(keystore_file: Path) -> KeystoreReference:
    return KeystoreReference(
        path=keystore_file,
        alias=KEY_ALIAS,
        store_password=SecretStr(STORE_PASSWORD),
        key_password=SecretStr(KEY_PASSWORD),
    )


@pytest.fixture()
def apk_request(build_dir: Path, keystore_ref: KeystoreReference) -> PipelineRequest:
    return PipelineRequest(output_dir=build_dir, kind=ArtifactKind.APK, keystore=keystore_ref)


_FAKE_JARSIGNER = """\
import os
import shutil
import sys
import time

args = sys.argv[1:]

if "-verify" in args:
    sys.stdout.write(os.environ.get("FAKE_JARSIGNER_VERIFY_OUTPUT", "jar verified.\\n"))
    sys.exit(int(os.environ.get("FAKE_JARSIGNER_VERIFY_EXIT", "0")))

mode = os.environ.get("FAKE_JARSIGNER_MODE", "ok")
if mode == "sleep":
    time.sleep(30)
if mode == "crash":
    sys.stdout.write("jarsigner error: java.util.zip.ZipException: zip END header not found\\n")
    sys.exit(1)
if mode == "leak":
    sys.stdout.write("password is " + os.environ["RELSIGN_JARSIGNER_STOREPASS"] + "\\n")
    sys.exit(1)
if mode == "no-output":
    sys.exit(0)

expected = os.environ.get("FAKE_JARSIGNER_EXPECTED_STOREPASS")
if expected is not None and os.environ.get("RELSIGN_JARSIGNER_STOREPASS") != expected:
    sys.stdout.write(
        "jarsigner error: java.io.IOException: "
        "Keystore was tampered with, or password was incorrect\\n"
    )
    sys.exit(1)

output = args[args.index("-signedjar") + 1]
source = args[-2]
shutil.copyfile(source, output)
with open(output, "ab") as f:
    f.write(b"\\nSIGNED-BY-FAKE-JARSIGNER")
sys.stdout.write("jar signed.\\n")
"""


@pytest.fixture()
def fake_jarsigner(tmp_path: Path) -> Path:
    """An executable stand-in for jarsigner, see the module docstring."""
    if sys.platform == "win32":
        pytest.skip("fake jarsigner script needs a POSIX shebang")
    script = tmp_path / "tools" / "jarsigner"
    script.parent.mkdir()
    script.write_text(f"#!{sys.executable}\n" + _FAKE_JARSIGNER, encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture()
def tmp_config_file(tmp_path: Path) -> Path:
    """
    Create a minimal valid config YAML file in a temp directory.

    This is the smallest config that passes schema validation.
    Tests that need specific config values should write their own files.
    """
    config_content = textwrap.dedent("""\
        global:
          config_version: "1.0.0"
          project_name: "relsign-test"
          log_level: "DEBUG"
    """)
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def invalid_config_file(tmp_path: Path) -> Path:
    """A config file that's valid YAML but fails schema validation (missing required field)."""
    config_content = textwrap.dedent("""\
        global:
          project_name: "relsign-test"
    """)
    config_file = tmp_path / "invalid_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def broken_yaml_file(tmp_path: Path) -> Path:
    """A file that isn't valid YAML at all."""
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("{{not: yaml: at: all:::", encoding="utf-8")
    return config_file


@pytest.fixture()
def project_root() -> Path:
    return Path(__file__).resolve().parent.parent


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove any real signing variables from the environment."""
    for name in list(os.environ):
        if name.startswith("RELSIGN_") or name.startswith("FAKE_JARSIGNER_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
