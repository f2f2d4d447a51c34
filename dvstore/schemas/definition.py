"""Definition Schemas — the stored cluster definition and its validation predicates.

Invariants:
    - config_hash is 0x-prefixed hex of a 32-byte sha256 digest
    - config_hash covers the config fields plus operator addresses
    - definition_hash covers config_hash plus the full operator list
    - Predicates raise DefinitionVerificationError; they never mutate the model

Design Decisions:
    - Canonical JSON (sorted keys, compact separators) as the hashed encoding
    - Signature check is structural (ENR prefix, 65-byte hex signatures);
      key recovery belongs to the signing tooling, not this store
"""

import binascii
import hashlib
import json

from pydantic import BaseModel, ConfigDict, Field

HASH_LENGTH = 32
SIGNATURE_LENGTH = 65

_CONFIG_FIELDS = (
    "name", "uuid", "version", "timestamp", "num_validators", "threshold",
    "fee_recipient_address", "withdrawal_address", "dkg_algorithm", "fork_version",
)


class DefinitionVerificationError(ValueError):
    """A definition failed its hash or signature check."""


def decode_hex(value: str) -> bytes:
    """Decode optionally 0x-prefixed hex. Raises ValueError on bad input."""
    # binascii.Error subclasses ValueError; non-ASCII input raises ValueError.
    return binascii.unhexlify(value.removeprefix("0x"))


def encode_hex(value: bytes) -> str:
    return "0x" + value.hex()


def _digest(payload: object) -> bytes:
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).digest()


class Operator(BaseModel):
    """A node operator participating in the cluster."""
    address: str = ""
    enr: str = ""
    config_signature: str = ""
    enr_signature: str = ""


class Definition(BaseModel):
    """Cluster definition — identified by its config hash."""
    name: str = ""
    uuid: str = ""
    version: str = ""
    timestamp: str = ""
    num_validators: int = Field(0, ge=0)
    threshold: int = Field(0, ge=0)
    fee_recipient_address: str = ""
    withdrawal_address: str = ""
    dkg_algorithm: str = ""
    fork_version: str = ""
    operators: list[Operator] = Field(default_factory=list)
    config_hash: str = ""
    definition_hash: str = ""

    def compute_config_hash(self) -> bytes:
        payload = {k: getattr(self, k) for k in _CONFIG_FIELDS}
        payload["operators"] = [op.address for op in self.operators]
        return _digest(payload)

    def compute_definition_hash(self) -> bytes:
        return _digest({
            "config_hash": encode_hex(self.compute_config_hash()),
            "operators": [op.model_dump() for op in self.operators],
        })

    def config_hash_bytes(self) -> bytes:
        """Store key. Raises DefinitionVerificationError if not 32-byte hex."""
        try:
            key = decode_hex(self.config_hash)
        except ValueError as e:
            raise DefinitionVerificationError(f"config_hash is not hex: {e}") from e
        if len(key) != HASH_LENGTH:
            raise DefinitionVerificationError(
                f"config_hash must be {HASH_LENGTH} bytes, got {len(key)}",
            )
        return key

    def verify_hashes(self) -> None:
        if self.config_hash_bytes() != self.compute_config_hash():
            raise DefinitionVerificationError("config_hash mismatch")
        try:
            definition_hash = decode_hex(self.definition_hash)
        except ValueError as e:
            raise DefinitionVerificationError(f"definition_hash is not hex: {e}") from e
        if definition_hash != self.compute_definition_hash():
            raise DefinitionVerificationError("definition_hash mismatch")

    def verify_signatures(self) -> None:
        for i, op in enumerate(self.operators):
            if not op.address:
                continue  # slot not yet claimed
            if not op.enr.startswith("enr:"):
                raise DefinitionVerificationError(f"operator {i}: invalid enr")
            for field in ("config_signature", "enr_signature"):
                try:
                    sig = decode_hex(getattr(op, field))
                except ValueError as e:
                    raise DefinitionVerificationError(
                        f"operator {i}: {field} is not hex",
                    ) from e
                if len(sig) != SIGNATURE_LENGTH:
                    raise DefinitionVerificationError(
                        f"operator {i}: {field} must be {SIGNATURE_LENGTH} bytes",
                    )


class AddOperatorRequest(Operator):
    """PUT body — operator fields plus the hex fork version."""
    model_config = ConfigDict(populate_by_name=True)

    fork_version: str = Field("", alias="ForkVersion")

    def operator(self) -> Operator:
        return Operator(**self.model_dump(exclude={"fork_version"}))


class ErrorResponse(BaseModel):
    """Wire shape for every non-2xx response."""
    code: int
    message: str
