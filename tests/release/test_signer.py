# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the jarsigner signer adapter, run against a fake jarsigner script.
"""

import stat
import tempfile
from pathlib import Path

import pytest

import relsign.release.signing.signer as signing_module
from relsign.config.schema import SignerConfig
from relsign.logging.logger import register_secret
from relsign.release.errors import (
    SigningFailedError,
    ToolUnavailableError,
    WrongCredentialsError,
)
from relsign.release.signing.signer import (
    KEY_PASSWORD_ENV,
    STORE_PASSWORD_ENV,
    JarsignerSigner,
    is_wrong_credentials,
)

STORE_PASSWORD = "store-pass-1234"


@pytest.fixture()
def unsigned_apk(build_dir: Path) -> Path:
    return build_dir / "app-release-unsigned.apk"


@pytest.fixture()
def signer(fake_jarsigner: Path, clean_env) -> JarsignerSigner:
    return JarsignerSigner(SignerConfig(executable=str(fake_jarsigner), timeout_seconds=5))


def _leftovers(directory: Path) -> list[str]:
    return sorted(p.name for p in directory.iterdir() if p.name.startswith("."))


class TestCommand:
    def test_passwords_are_not_on_the_command_line(self, keystore_ref, unsigned_apk) -> None:
        command = JarsignerSigner(SignerConfig()).build_command(
            unsigned_apk, unsigned_apk.with_name("out.apk"), keystore_ref
        )
        joined = " ".join(command)
        assert keystore_ref.store_password.get_secret_value() not in joined
        assert keystore_ref.key_password.get_secret_value() not in joined
        assert ["-storepass:env", STORE_PASSWORD_ENV] == command[3:5]
        assert ["-keypass:env", KEY_PASSWORD_ENV] == command[5:7]

    def test_command_shape(self, keystore_ref, unsigned_apk) -> None:
        out = unsigned_apk.with_name("out.apk")
        command = JarsignerSigner(SignerConfig()).build_command(unsigned_apk, out, keystore_ref)
        assert command[0] == "jarsigner"
        assert command[-4:] == ["-signedjar", str(out), str(unsigned_apk), "upload"]
        assert "-sigalg" in command and "SHA256withRSA" in command
        assert "-tsa" not in command

    def test_tsa_url_is_passed(self, keystore_ref, unsigned_apk) -> None:
        config = SignerConfig(tsa_url="http://timestamp.example.com")
        command = JarsignerSigner(config).build_command(unsigned_apk, unsigned_apk, keystore_ref)
        assert command[command.index("-tsa") + 1] == "http://timestamp.example.com"


class TestSign:
    def test_signs_in_place_keeping_the_name(self, signer, keystore_ref, unsigned_apk) -> None:
        original = unsigned_apk.read_bytes()

        signed = signer.sign(unsigned_apk, keystore_ref)

        assert signed == unsigned_apk
        assert signed.read_bytes() == original + b"\nSIGNED-BY-FAKE-JARSIGNER"
        assert _leftovers(unsigned_apk.parent) == []

    def test_passwords_reach_the_tool_via_environment(
        self, signer, keystore_ref, unsigned_apk, monkeypatch
    ) -> None:
        monkeypatch.setenv("FAKE_JARSIGNER_EXPECTED_STOREPASS", STORE_PASSWORD)
        signer.sign(unsigned_apk, keystore_ref)
        assert unsigned_apk.read_bytes().endswith(b"SIGNED-BY-FAKE-JARSIGNER")

    def test_wrong_password(self, signer, keystore_ref, unsigned_apk, monkeypatch) -> None:
        monkeypatch.setenv("FAKE_JARSIGNER_EXPECTED_STOREPASS", "something-else")
        original = unsigned_apk.read_bytes()

        with pytest.raises(WrongCredentialsError) as excinfo:
            signer.sign(unsigned_apk, keystore_ref)

        assert excinfo.value.code == "Sign.WrongCredentials"
        assert "password was incorrect" in excinfo.value.diagnostics
        assert unsigned_apk.read_bytes() == original
        assert _leftovers(unsigned_apk.parent) == []

    def test_tool_failure_keeps_raw_diagnostics(
        self, signer, keystore_ref, unsigned_apk, monkeypatch
    ) -> None:
        monkeypatch.setenv("FAKE_JARSIGNER_MODE", "crash")
        with pytest.raises(SigningFailedError) as excinfo:
            signer.sign(unsigned_apk, keystore_ref)
        assert not isinstance(excinfo.value, WrongCredentialsError)
        assert excinfo.value.code == "Sign.Failed"
        assert "zip END header not found" in excinfo.value.diagnostics
        assert _leftovers(unsigned_apk.parent) == []

    def test_clean_exit_without_output_is_a_failure(
        self, signer, keystore_ref, unsigned_apk, monkeypatch
    ) -> None:
        monkeypatch.setenv("FAKE_JARSIGNER_MODE", "no-output")
        with pytest.raises(SigningFailedError):
            signer.sign(unsigned_apk, keystore_ref)
        assert _leftovers(unsigned_apk.parent) == []

    def test_missing_executable(self, keystore_ref, unsigned_apk, tmp_path) -> None:
        signer = JarsignerSigner(SignerConfig(executable=str(tmp_path / "no-such-jarsigner")))
        with pytest.raises(ToolUnavailableError) as excinfo:
            signer.sign(unsigned_apk, keystore_ref)
        assert excinfo.value.code == "Sign.ToolUnavailable"
        assert _leftovers(unsigned_apk.parent) == []

    def test_timeout_is_tool_unavailable(
        self, fake_jarsigner, keystore_ref, unsigned_apk, monkeypatch, clean_env
    ) -> None:
        monkeypatch.setenv("FAKE_JARSIGNER_MODE", "sleep")
        signer = JarsignerSigner(SignerConfig(executable=str(fake_jarsigner), timeout_seconds=1))
        original = unsigned_apk.read_bytes()

        with pytest.raises(ToolUnavailableError):
            signer.sign(unsigned_apk, keystore_ref)
        assert unsigned_apk.read_bytes() == original
        assert _leftovers(unsigned_apk.parent) == []

    def test_diagnostics_are_redacted(self, signer, keystore_ref, unsigned_apk, monkeypatch) -> None:
        monkeypatch.setenv("FAKE_JARSIGNER_MODE", "leak")
        register_secret(STORE_PASSWORD)
        with pytest.raises(SigningFailedError) as excinfo:
            signer.sign(unsigned_apk, keystore_ref)
        assert STORE_PASSWORD not in excinfo.value.diagnostics
        assert "***" in excinfo.value.diagnostics

    def test_permissions_are_kept(self, signer, keystore_ref, unsigned_apk) -> None:
        unsigned_apk.chmod(0o644)

        signer.sign(unsigned_apk, keystore_ref)

        assert stat.S_IMODE(unsigned_apk.stat().st_mode) == 0o644

    def test_staging_file_error_is_a_signing_failure(
        self, signer, keystore_ref, unsigned_apk, monkeypatch
    ) -> None:
        def _disk_full(*args, **kwargs):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(tempfile, "mkstemp", _disk_full)
        original = unsigned_apk.read_bytes()

        with pytest.raises(SigningFailedError) as excinfo:
            signer.sign(unsigned_apk, keystore_ref)

        assert excinfo.value.code == "Sign.Failed"
        assert "No space left on device" in excinfo.value.diagnostics
        assert unsigned_apk.read_bytes() == original

    def test_replace_error_is_a_signing_failure(
        self, signer, keystore_ref, unsigned_apk, monkeypatch
    ) -> None:
        def _read_only(src, dst):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(signing_module.os, "replace", _read_only)
        original = unsigned_apk.read_bytes()

        with pytest.raises(SigningFailedError) as excinfo:
            signer.sign(unsigned_apk, keystore_ref)

        assert "Permission denied" in excinfo.value.diagnostics
        assert unsigned_apk.read_bytes() == original
        assert _leftovers(unsigned_apk.parent) == []


class TestInterrupt:
    def test_interrupt_leaves_artifact_untouched(
        self, signer, keystore_ref, unsigned_apk, monkeypatch
    ) -> None:
        def _interrupted(*args, **kwargs):
            raise KeyboardInterrupt

        monkeypatch.setattr(signing_module, "run_tool", _interrupted)
        original = unsigned_apk.read_bytes()

        with pytest.raises(KeyboardInterrupt):
            signer.sign(unsigned_apk, keystore_ref)

        assert unsigned_apk.read_bytes() == original
        assert _leftovers(unsigned_apk.parent) == []

    def test_interrupt_after_signing_leaves_no_staging_file(
        self, signer, keystore_ref, unsigned_apk, monkeypatch
    ) -> None:
        def _interrupted(src, dst):
            raise KeyboardInterrupt

        monkeypatch.setattr(signing_module.os, "replace", _interrupted)
        original = unsigned_apk.read_bytes()

        with pytest.raises(KeyboardInterrupt):
            signer.sign(unsigned_apk, keystore_ref)

        assert unsigned_apk.read_bytes() == original
        assert _leftovers(unsigned_apk.parent) == []


class TestWrongCredentialDetection:
    @pytest.mark.parametrize(
        "output",
        [
            "jarsigner error: java.io.IOException: Keystore was tampered with, or password was incorrect",
            "jarsigner error: java.security.UnrecoverableKeyException: Cannot recover key",
            "java.security.UnrecoverableKeyException: Get Key failed: Given final block not properly padded",
            "jarsigner: Certificate chain not found for: upload.  upload must reference a valid KeyStore key entry",
        ],
    )
    def test_known_signatures(self, output: str) -> None:
        assert is_wrong_credentials(output)

    def test_other_errors(self) -> None:
        assert not is_wrong_credentials("jarsigner error: java.util.zip.ZipException: invalid")
