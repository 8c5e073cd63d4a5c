"""
Apple Wallet rendering.

Builds pass.json from profile templates (or the multi-type builders),
packages it with icon assets, signs the manifest and zips everything into a
.pkpass bundle.
"""

import hashlib
import io
import json
import logging
import os
import subprocess
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    pkcs12,
)
from PIL import Image

from walletpass.core.config import get_web_service_url, settings
from walletpass.core.errors import RenderError
from walletpass.domain.wallet_pass import PassKind
from walletpass.profiles import Profile, get_profile
from walletpass.services.templates import (
    as_pass_dict,
    load_template,
    merge_apple_template,
    populate_apple_fields,
    template_exists,
)
from walletpass.services.wallets.apple_types import APPLE_BUILDERS, APPLE_STYLES

logger = logging.getLogger(__name__)

PKPASS_MEDIA_TYPE = "application/vnd.apple.pkpass"

# Icon sizes required by Wallet (filename -> pixel size)
ICON_SIZES = {
    "icon.png": 29,
    "icon@2x.png": 58,
    "icon@3x.png": 87,
    "logo.png": 160,
    "logo@2x.png": 320,
}

# Keys of metadata.appleWallet copied verbatim onto pass.json
APPLE_OVERRIDE_KEYS = (
    "relevantText",
    "relevantDate",
    "expirationDate",
    "locations",
    "maxDistance",
    "backgroundColor",
    "foregroundColor",
    "labelColor",
    "logoText",
    "organizationName",
    "description",
)


def _parse_rgb(color: str | None, default: tuple[int, int, int] = (0, 0, 0)) -> tuple[int, int, int]:
    """Parse an `rgb(r, g, b)` or `#rrggbb` color string."""
    if not color:
        return default
    color = color.strip()
    try:
        if color.startswith("#") and len(color) == 7:
            return tuple(int(color[i:i + 2], 16) for i in (1, 3, 5))
        if color.startswith("rgb(") and color.endswith(")"):
            r, g, b = (int(p.strip()) for p in color[4:-1].split(","))
            return r, g, b
    except ValueError:
        pass
    return default


class PassSigner:
    """
    Signs pass manifests with a PKCS#7 detached signature using the OpenSSL CLI.

    The signer certificate can be a PEM certificate plus key, or a .p12 bundle
    (unpacked to temporary PEM files for each signing run).
    """

    def __init__(
        self,
        cert_path: str,
        wwdr_path: str,
        key_path: str | None = None,
        cert_password: str | None = None,
    ):
        self.cert_path = cert_path
        self.key_path = key_path or cert_path
        self.wwdr_path = wwdr_path
        self.cert_password = cert_password

    @property
    def is_p12(self) -> bool:
        return Path(self.cert_path).suffix.lower() in (".p12", ".pfx")

    def missing_files(self) -> list[str]:
        paths = {self.cert_path, self.wwdr_path}
        if not self.is_p12:
            paths.add(self.key_path)
        return sorted(p for p in paths if not Path(p).is_file())

    def _extract_from_p12(self) -> tuple[bytes, bytes]:
        """Extract signer cert and key PEM from the .p12 bundle."""
        pwd = self.cert_password.encode() if self.cert_password else None
        p12_data = Path(self.cert_path).read_bytes()
        private_key, certificate, _ = pkcs12.load_key_and_certificates(p12_data, pwd)
        if not private_key or not certificate:
            raise ValueError("P12 file must contain both a private key and certificate")
        key_pem = private_key.private_bytes(Encoding.PEM, PrivateFormat.TraditionalOpenSSL, NoEncryption())
        return certificate.public_bytes(Encoding.PEM), key_pem

    @contextmanager
    def _signing_material(self, tmpdir: str) -> Iterator[tuple[str, str, str | None]]:
        if not self.is_p12:
            yield self.cert_path, self.key_path, self.cert_password
            return
        cert_pem, key_pem = self._extract_from_p12()
        cert_file = os.path.join(tmpdir, "signer_cert.pem")
        key_file = os.path.join(tmpdir, "signer_key.pem")
        with open(cert_file, "wb") as f:
            f.write(cert_pem)
        with open(key_file, "wb") as f:
            f.write(key_pem)
        os.chmod(key_file, 0o600)
        yield cert_file, key_file, None

    def sign(self, manifest_data: bytes) -> bytes:
        """Create PKCS#7 detached signature using OpenSSL CLI."""
        missing = self.missing_files()
        if missing:
            raise RuntimeError(f"Certificate files not found: {', '.join(missing)}")

        with tempfile.TemporaryDirectory() as tmpdir:
            manifest_path = os.path.join(tmpdir, "manifest.json")
            signature_path = os.path.join(tmpdir, "signature")

            with open(manifest_path, "wb") as f:
                f.write(manifest_data)

            with self._signing_material(tmpdir) as (cert_file, key_file, password):
                cmd = [
                    "openssl", "smime", "-sign",
                    "-signer", cert_file,
                    "-inkey", key_file,
                    "-certfile", self.wwdr_path,
                    "-in", manifest_path,
                    "-out", signature_path,
                    "-outform", "DER",
                    "-binary",
                ]
                if password:
                    cmd.extend(["-passin", f"pass:{password}"])

                result = subprocess.run(cmd, capture_output=True, text=True)
                if result.returncode != 0:
                    raise RuntimeError(f"OpenSSL signing failed: {result.stderr}")

            with open(signature_path, "rb") as f:
                return f.read()


class AppleWalletAdapter:
    """Renders passes as Apple Wallet .pkpass bundles."""

    def __init__(
        self,
        team_id: str,
        pass_type_id: str,
        signer: PassSigner,
        organization_name: str = "Walletpass",
        web_service_url: str | None = None,
    ):
        self.team_id = team_id
        self.pass_type_id = pass_type_id
        self.signer = signer
        self.organization_name = organization_name
        self.web_service_url = web_service_url

    # ===== pass.json =====

    def _identifiers(self, serial_number: str) -> dict[str, Any]:
        return {
            "formatVersion": 1,
            "serialNumber": serial_number,
            "passTypeIdentifier": self.pass_type_id,
            "teamIdentifier": self.team_id,
        }

    def _apply_apple_overrides(self, pass_json: dict[str, Any], apple_meta: dict[str, Any]) -> None:
        for key in APPLE_OVERRIDE_KEYS:
            if apple_meta.get(key) not in (None, "", []):
                pass_json[key] = apple_meta[key]

        token = apple_meta.get("authenticationToken")
        if token:
            pass_json["authenticationToken"] = token
            pass_json["webServiceURL"] = apple_meta.get("webServiceURL") or self.web_service_url

    def build_pass_json(
        self,
        pass_data: Any,
        profile: Profile | str | None = None,
        pass_type: str | None = None,
    ) -> dict[str, Any]:
        """Build pass.json for a lifecycle pass (parent or child)."""
        data = as_pass_dict(pass_data)
        pass_type = pass_type or data.get("type", "child")
        if profile is None or isinstance(profile, str):
            profile = get_profile(profile or data["profile"])

        pass_json = merge_apple_template(load_template("apple", pass_type), profile.apple_template(pass_type))
        populate_apple_fields(pass_json["generic"], data)

        barcode_message = data.get("memberId") or data["id"]
        barcodes = pass_json.get("barcodes") or [
            {"format": "PKBarcodeFormatQR", "messageEncoding": "iso-8859-1"}
        ]
        barcodes[0]["message"] = barcode_message
        pass_json["barcodes"] = barcodes
        pass_json["barcode"] = dict(barcodes[0])

        pass_json.update(self._identifiers(data["id"]))
        pass_json["description"] = pass_json.get("description") or "Wallet Pass"
        pass_json["organizationName"] = pass_json.get("organizationName") or self.organization_name

        self._apply_apple_overrides(pass_json, (data.get("metadata") or {}).get("appleWallet") or {})
        logger.debug(f"[AppleWallet] pass.json for {data['id']}: {pass_json}")
        return pass_json

    def build_wallet_pass_json(self, pass_id: str, wallet_input: Any) -> dict[str, Any]:
        """Build pass.json for a multi-type wallet pass."""
        kind = PassKind(wallet_input.pass_type)
        style = APPLE_STYLES[kind]
        base = load_template("apple", style if template_exists("apple", style) else "generic")

        pass_json = {**base, **APPLE_BUILDERS[kind](pass_id, wallet_input)}
        pass_json.update(self._identifiers(pass_id))
        pass_json["organizationName"] = pass_json.get("organizationName") or self.organization_name
        self._apply_apple_overrides(pass_json, wallet_input.metadata.get("appleWallet") or {})
        return pass_json

    # ===== bundle =====

    def _get_asset_files(self, background_color: str | None) -> dict[str, bytes]:
        """Render solid icon/logo images in the pass background color."""
        rgb = _parse_rgb(background_color, default=(17, 24, 39))
        files = {}
        for filename, size in ICON_SIZES.items():
            buffer = io.BytesIO()
            Image.new("RGB", (size, size), rgb).save(buffer, format="PNG")
            files[filename] = buffer.getvalue()
        return files

    def _create_manifest(self, files: dict[str, bytes]) -> bytes:
        """Create manifest.json with SHA-1 hashes of all files."""
        manifest = {}
        for filename, content in files.items():
            manifest[filename] = hashlib.sha1(content).hexdigest()
        return json.dumps(manifest).encode("utf-8")

    def package(self, pass_json: dict[str, Any]) -> bytes:
        """Sign and zip a pass.json into .pkpass bytes."""
        try:
            files = self._get_asset_files(pass_json.get("backgroundColor"))
            files["pass.json"] = json.dumps(pass_json).encode("utf-8")

            manifest_data = self._create_manifest(files)
            files["manifest.json"] = manifest_data
            files["signature"] = self.signer.sign(manifest_data)

            buffer = io.BytesIO()
            with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
                for filename, content in files.items():
                    zf.writestr(filename, content)
            return buffer.getvalue()
        except (OSError, RuntimeError, ValueError) as e:
            raise RenderError(f"Failed to generate Apple Wallet pass: {e}") from e

    def generate_pkpass(
        self,
        pass_data: Any,
        profile: Profile | str | None = None,
        pass_type: str | None = None,
    ) -> bytes:
        """Generate a complete .pkpass file for a lifecycle pass."""
        try:
            pass_json = self.build_pass_json(pass_data, profile, pass_type)
        except (KeyError, OSError, ValueError) as e:
            raise RenderError(f"Failed to generate Apple Wallet pass: {e}") from e
        pkpass = self.package(pass_json)
        logger.info(f"[AppleWallet] Generated pkpass for {pass_json['serialNumber']} ({len(pkpass)} bytes)")
        return pkpass

    def generate_pass(self, pass_id: str, wallet_input: Any) -> bytes:
        """Generate a complete .pkpass file for a multi-type wallet pass."""
        try:
            pass_json = self.build_wallet_pass_json(pass_id, wallet_input)
        except (KeyError, OSError, ValueError) as e:
            raise RenderError(f"Failed to generate Apple Wallet pass: {e}") from e
        return self.package(pass_json)


def create_apple_wallet_adapter() -> AppleWalletAdapter:
    """Factory function to create AppleWalletAdapter from settings."""
    signer = PassSigner(
        cert_path=settings.apple_cert_path,
        key_path=settings.apple_key_path,
        wwdr_path=settings.apple_wwdr_path,
        cert_password=settings.apple_cert_password,
    )
    return AppleWalletAdapter(
        team_id=settings.apple_team_id,
        pass_type_id=settings.apple_pass_type_id,
        signer=signer,
        organization_name=settings.organization_name,
        web_service_url=get_web_service_url(),
    )
