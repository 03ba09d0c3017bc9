"""Persistent CLI defaults at ~/.idlkit/config.toml."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any
from urllib.parse import quote

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[no-redef]

import tomli_w

CLUSTER_URLS: dict[str, str] = {
    "localnet": "http://127.0.0.1:8899",
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "mainnet": "https://api.mainnet-beta.solana.com",
}

EXPLORERS = ("solana", "solscan", "solanaFm")

_DEFAULTS: dict[str, Any] = {
    "version": 1,
    "cluster": "devnet",
    "rpc_url": CLUSTER_URLS["devnet"],
    "explorer": "solana",
}


@dataclass(frozen=True)
class RuntimeContext:
    """Resolved values used by CLI commands."""

    cluster: str
    rpc_url: str | None
    program_id: str | None
    idl: str | None
    explorer: str = "solana"

    def explorer_url(self, kind: str, value: str) -> str:
        return explorer_url(kind, value, self.rpc_url or "", self.explorer)


def explorer_url(kind: str, value: str, rpc_url: str, explorer: str = "solana") -> str:
    """Link to a transaction (`kind="tx"`) or address on a block explorer.

    The cluster is inferred from the RPC URL; unknown URLs are "custom".
    """
    is_mainnet = "mainnet" in rpc_url
    if is_mainnet:
        cluster = "mainnet-beta"
    elif "devnet" in rpc_url:
        cluster = "devnet"
    elif "testnet" in rpc_url:
        cluster = "testnet"
    else:
        cluster = "custom"

    if explorer == "solscan":
        suffix = "" if is_mainnet else f"?cluster={cluster}"
        return f"https://solscan.io/{kind}/{value}{suffix}"
    if explorer == "solanaFm":
        suffix = "" if is_mainnet else f"?cluster={cluster}-solana"
        return f"https://solana.fm/{kind}/{value}{suffix}"
    url = f"https://explorer.solana.com/{kind}/{value}?cluster={cluster}"
    if cluster == "custom":
        url += f"&customUrl={quote(rpc_url, safe='')}"
    return url


def config_dir() -> Path:
    override = os.environ.get("IDLKIT_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".idlkit"


def config_path() -> Path:
    return config_dir() / "config.toml"


def _fresh_config() -> dict[str, Any]:
    return {"defaults": dict(_DEFAULTS)}


def load_config() -> dict[str, Any]:
    """Load or create the config file."""
    path = config_path()
    if not path.exists():
        data = _fresh_config()
        save_config(data)
        return data
    return tomllib.loads(path.read_text())


def save_config(data: dict[str, Any]) -> None:
    path = config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(tomli_w.dumps(data).encode())


def get_defaults() -> dict[str, Any]:
    return load_config().get("defaults", {})


def set_defaults(
    cluster: str | None = None,
    rpc_url: str | None = None,
    program_id: str | None = None,
    idl: str | None = None,
    explorer: str | None = None,
) -> dict[str, Any]:
    """Update stored defaults; None leaves a key untouched."""
    if cluster is not None and cluster not in CLUSTER_URLS:
        raise ValueError(f"cluster must be one of: {', '.join(CLUSTER_URLS)}")
    if explorer is not None and explorer not in EXPLORERS:
        raise ValueError(f"explorer must be one of: {', '.join(EXPLORERS)}")
    data = load_config()
    defaults = data.setdefault("defaults", {})
    if cluster is not None:
        defaults["cluster"] = cluster
        if rpc_url is None:
            defaults["rpc_url"] = CLUSTER_URLS[cluster]
    if rpc_url is not None:
        defaults["rpc_url"] = rpc_url
    if program_id is not None:
        defaults["program_id"] = program_id
    if idl is not None:
        defaults["idl"] = str(Path(idl).expanduser().resolve())
    if explorer is not None:
        defaults["explorer"] = explorer
    save_config(data)
    return defaults


def _clean(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped if stripped else None


def resolve_context(
    cluster: str | None = None,
    rpc_url: str | None = None,
    program_id: str | None = None,
    idl: str | None = None,
) -> RuntimeContext:
    """Explicit values win over stored defaults."""
    defaults = get_defaults()
    resolved_cluster = _clean(cluster) or _clean(defaults.get("cluster")) or "devnet"
    explicit_rpc = _clean(rpc_url)
    if explicit_rpc is None and _clean(cluster):
        # An explicit cluster overrides a stored RPC URL for another cluster.
        explicit_rpc = CLUSTER_URLS.get(resolved_cluster)
    resolved_rpc = explicit_rpc or _clean(defaults.get("rpc_url")) or CLUSTER_URLS.get(resolved_cluster)
    return RuntimeContext(
        cluster=resolved_cluster,
        rpc_url=resolved_rpc,
        program_id=_clean(program_id) or _clean(defaults.get("program_id")),
        idl=_clean(idl) or _clean(defaults.get("idl")),
        explorer=_clean(defaults.get("explorer")) or "solana",
    )
