"""
Configuration Type Definitions

Validator, endpoint and chain topology types persisted in
``chain_config.json``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

VALSET_ANON = "anon"


@dataclass
class Validator:
    """A validator identity, independent of any chain"""
    id: str
    pub_key: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "pub_key": self.pub_key}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Validator":
        return cls(id=data["id"], pub_key=data.get("pub_key"))


@dataclass
class ValidatorSet:
    """A named validator set, independent of any chain"""
    id: str
    validators: List[Validator] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidatorSet":
        return cls(
            id=data.get("id", ""),
            validators=[Validator.from_dict(v) for v in data.get("validators") or []],
        )


@dataclass(frozen=True)
class NodeEndpoint:
    """Peer-to-peer and control addresses of a running core process"""
    p2p_addr: str
    rpc_addr: str


@dataclass
class ValidatorSlot:
    """A fixed position in the chain's validator list.

    ``index`` is assigned at chain init and never changes; the validator
    and endpoint are overwritten on every successful (re)start.
    """
    index: int
    validator: Validator
    endpoint: Optional[NodeEndpoint] = None

    @property
    def filled(self) -> bool:
        return self.endpoint is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "id": self.validator.id,
            "public_key": self.validator.pub_key,
            "p2p_address": self.endpoint.p2p_addr if self.endpoint else "",
            "rpc_address": self.endpoint.rpc_addr if self.endpoint else "",
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidatorSlot":
        p2p = data.get("p2p_address") or ""
        rpc = data.get("rpc_address") or ""
        return cls(
            index=int(data.get("index", 0)),
            validator=Validator(id=data.get("id", ""), pub_key=data.get("public_key")),
            endpoint=NodeEndpoint(p2p, rpc) if p2p or rpc else None,
        )


@dataclass
class NetworkConfiguration:
    """Persisted topology of one chain"""
    id: str = ""
    val_set_id: str = VALSET_ANON
    validators: List[ValidatorSlot] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "val_set_id": self.val_set_id,
            "validators": [slot.to_dict() for slot in self.validators],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NetworkConfiguration":
        return cls(
            id=data.get("id", ""),
            val_set_id=data.get("val_set_id", VALSET_ANON),
            validators=[ValidatorSlot.from_dict(s) for s in data.get("validators") or []],
        )


@dataclass(frozen=True)
class ProvisionedNode:
    """What a successfully started host contributes to the topology"""
    validator: Validator
    endpoint: NodeEndpoint
