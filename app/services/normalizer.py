"""Normalization of router telemetry items into canonical metrics.

The monitoring upstream does not use a fixed schema: the same quantity may
arrive under several field names, flat or nested, as a number or as a
string with units. Field names are kept in declarative alias tables mapping
each canonical field to the ordered paths that may carry it; a single
resolver walks those paths and returns the first value the coercer accepts.
Adding a new upstream field name only means extending a table.
"""

import math
import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

Number = Union[int, float]
MetricValue = Union[int, float, str, None]
Path = Tuple[str, ...]

ROUTER_FIELD_ALIASES: Dict[str, Tuple[Path, ...]] = {
    "identifier": (
        ("id",),
        ("ID",),
        ("Id",),
        ("routerId",),
        ("router_id",),
        ("routerID",),
        ("uuid",),
        ("UUID",),
    ),
    "name": (
        ("name",),
        ("routerName",),
        ("router_name",),
        ("router",),
        ("identity",),
    ),
    "status": (
        ("status",),
        ("state",),
        ("health",),
        ("connectionStatus",),
        ("connection_status",),
    ),
    "total": (
        ("total",),
        ("pppoe_total",),
        ("pppoeTotal",),
        ("pppoe_count",),
        ("pppoe", "total"),
    ),
    "active": (
        ("active",),
        ("pppoe_active",),
        ("pppoeActive",),
        ("pppoe", "active"),
    ),
    "cpu": (
        ("cpu",),
        ("cpu_usage",),
        ("resource", "cpu"),
        ("cpuLoad",),
        ("cpu_load",),
    ),
    "memory": (
        ("memory",),
        ("memory_usage",),
        ("resource", "memory"),
        ("memoryLoad",),
        ("memory_load",),
    ),
    "interfaces": (
        ("interfaces",),
        ("interface",),
        ("ifaces",),
        ("traffic",),
        ("stats",),
    ),
}

INTERFACE_FIELD_ALIASES: Dict[str, Tuple[Path, ...]] = {
    "name": (("name",), ("interface",), ("iface",), ("id",)),
    "rx": (
        ("rx",),
        ("rx_bps",),
        ("rxRate",),
        ("rx_rate",),
        ("rx_mbps",),
        ("rxBytes",),
        ("rx_bytes",),
        ("download",),
        ("in",),
        ("receive",),
        ("rxTraffic",),
    ),
    "tx": (
        ("tx",),
        ("tx_bps",),
        ("txRate",),
        ("tx_rate",),
        ("tx_mbps",),
        ("txBytes",),
        ("tx_bytes",),
        ("upload",),
        ("out",),
        ("transmit",),
        ("txTraffic",),
    ),
    "status": (
        ("status",),
        ("state",),
        ("linkStatus",),
        ("interfaceStatus",),
    ),
    "rx_unit": (("rx_unit",), ("rxUnit",), ("rxUnits",)),
    "tx_unit": (("tx_unit",), ("txUnit",), ("txUnits",)),
}

# Fields an incremental update may overwrite on an existing router.
MERGEABLE_FIELDS = ("name", "status", "total", "active", "cpu", "memory", "interfaces")

_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")


# ---------------------------------------------------------------------------
# Coercers
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def pick_string(value: Any) -> Optional[str]:
    """Return a trimmed non-empty string, else None."""
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    return None


def pick_identifier(value: Any) -> Optional[str]:
    """Return a string or number as a trimmed identifier string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer():
            value = int(value)
    if isinstance(value, (str, int, float)):
        trimmed = str(value).strip()
        return trimmed or None
    return None


def pick_number(value: Any) -> Optional[Number]:
    """Coerce numbers and numeric-looking strings.

    Strings have thousands separators stripped and yield the first signed
    decimal found, so ``"1,024 sessions"`` gives 1024 and ``"12.4 Mbps"``
    gives 12.4.
    """
    if _is_number(value):
        return value
    if isinstance(value, str):
        match = _NUMBER_PATTERN.search(value.replace(",", ""))
        if match:
            text = match.group(0)
            return float(text) if "." in text else int(text)
    return None


def pick_metric_value(value: Any) -> MetricValue:
    """Number when parseable, else the trimmed string, else None."""
    numeric = pick_number(value)
    if numeric is not None:
        return numeric
    return pick_string(value)


def metric_to_number(value: MetricValue) -> Optional[Number]:
    if _is_number(value):
        return value
    if isinstance(value, str):
        return pick_number(value)
    return None


def _as_record(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


def _container(value: Any) -> Optional[Union[list, dict]]:
    return value if isinstance(value, (list, dict)) else None


def _lookup(record: dict, path: Path) -> Any:
    value: Any = record
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def resolve(
    record: dict,
    aliases: Iterable[Path],
    coerce: Callable[[Any], Any],
) -> Any:
    """Return the first alias value accepted by ``coerce``, or None."""
    for path in aliases:
        value = coerce(_lookup(record, path))
        if value is not None:
            return value
    return None


# ---------------------------------------------------------------------------
# Canonical types
# ---------------------------------------------------------------------------


@dataclass
class InterfaceStat:
    """Traffic counters of one router interface.

    ``rx``/``tx`` are numbers when upstream sent something numeric and the
    raw trimmed text otherwise; units are not normalized.
    """

    name: str
    rx: MetricValue = None
    tx: MetricValue = None
    status: Optional[str] = None
    rx_unit: Optional[str] = None
    tx_unit: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "rx": self.rx,
            "tx": self.tx,
            "status": self.status,
            "rx_unit": self.rx_unit,
            "tx_unit": self.tx_unit,
        }


@dataclass
class RouterMetric:
    """Latest known metrics of one router.

    ``provided`` names the fields that were present in the upstream item;
    fallbacks (generated names, missing counters) are not in it, so a
    partial update never erases a previously known value.
    """

    id: str
    name: str
    status: Optional[str] = None
    total: Optional[Number] = None
    active: Optional[Number] = None
    cpu: Optional[Number] = None
    memory: Optional[Number] = None
    interfaces: List[InterfaceStat] = field(default_factory=list)
    last_updated_at: int = 0
    provided: FrozenSet[str] = frozenset()

    def merged_with(self, update: "RouterMetric") -> "RouterMetric":
        """Overlay the fields ``update`` carries onto this metric."""
        changes = {
            name: getattr(update, name)
            for name in MERGEABLE_FIELDS
            if name in update.provided
        }
        return replace(
            self,
            last_updated_at=update.last_updated_at,
            provided=self.provided | update.provided,
            **changes,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "total": self.total,
            "active": self.active,
            "cpu": self.cpu,
            "memory": self.memory,
            "interfaces": [iface.to_dict() for iface in self.interfaces],
            "last_updated_at": self.last_updated_at,
        }


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_interface_entry(
    value: Any, index: int, fallback_name: Optional[str] = None
) -> InterfaceStat:
    """Normalize one interface entry; scalars become a receive-only stat."""
    label = fallback_name or f"Interface {index + 1}"
    record = _as_record(value)
    if record is None:
        return InterfaceStat(name=label, rx=pick_metric_value(value))

    aliases = INTERFACE_FIELD_ALIASES
    return InterfaceStat(
        name=resolve(record, aliases["name"], pick_string) or label,
        rx=resolve(record, aliases["rx"], pick_metric_value),
        tx=resolve(record, aliases["tx"], pick_metric_value),
        status=resolve(record, aliases["status"], pick_string),
        rx_unit=resolve(record, aliases["rx_unit"], pick_string),
        tx_unit=resolve(record, aliases["tx_unit"], pick_string),
    )


def normalize_interfaces(value: Any) -> Optional[List[InterfaceStat]]:
    """Normalize an interface container.

    Lists are normalized positionally; mappings use each key as the
    fallback interface name. Anything else returns None.
    """
    if isinstance(value, list):
        return [normalize_interface_entry(entry, index) for index, entry in enumerate(value)]
    if isinstance(value, dict):
        return [
            normalize_interface_entry(entry, index, str(key))
            for index, (key, entry) in enumerate(value.items())
        ]
    return None


def normalize_router_item(
    value: Any, index: int, timestamp: int = 0
) -> Optional[RouterMetric]:
    """Normalize one raw router item, or return None if it is not an object."""
    record = _as_record(value)
    if record is None:
        return None

    aliases = ROUTER_FIELD_ALIASES
    provided = set()

    def take(name: str, coerce: Callable[[Any], Any]) -> Any:
        resolved = resolve(record, aliases[name], coerce)
        if resolved is not None:
            provided.add(name)
        return resolved

    resolved_name = take("name", pick_string)
    identifier = resolve(record, aliases["identifier"], pick_identifier)
    if identifier is None:
        identifier = resolved_name or f"router-{index}"
    name = resolved_name or f"Router {index + 1}"
    if not identifier or not name:
        return None

    container = take("interfaces", _container)
    interfaces = normalize_interfaces(container) if container is not None else []

    return RouterMetric(
        id=identifier,
        name=name,
        status=take("status", pick_string),
        total=take("total", pick_number),
        active=take("active", pick_number),
        cpu=take("cpu", pick_number),
        memory=take("memory", pick_number),
        interfaces=interfaces,
        last_updated_at=timestamp,
        provided=frozenset(provided),
    )


def normalize_router_payload(items: Iterable[Any], timestamp: int = 0) -> List[RouterMetric]:
    """Normalize raw router items, dropping those that cannot be read."""
    result = []
    for index, item in enumerate(items):
        metric = normalize_router_item(item, index, timestamp)
        if metric is not None:
            result.append(metric)
    return result


def peak_interface_traffic(interfaces: Iterable[InterfaceStat]) -> Optional[Number]:
    """Largest numeric rx/tx value across interfaces, or None."""
    values = [
        number
        for iface in interfaces
        for number in (metric_to_number(iface.rx), metric_to_number(iface.tx))
        if number is not None
    ]
    return max(values) if values else None
