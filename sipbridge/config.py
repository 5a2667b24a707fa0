"""Service configuration loaded from YAML and environment variables."""

from __future__ import annotations

import ipaddress
import logging
import os
import re
import secrets
import socket
import string
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import psutil
import yaml

from sipbridge.errors import ErrorCode, SIPError, could_not_parse_config

DEFAULT_SIP_PORT = 5060
DEFAULT_SIP_PORT_TLS = 5061


@dataclass
class PortRange:
    """An inclusive range of ports."""

    start: int = 0
    end: int = 0


DEFAULT_RTP_PORT_RANGE = PortRange(start=10000, end=20000)


@dataclass
class TLSCert:
    cert_file: str = ""
    key_file: str = ""


@dataclass
class TLSConfig:
    port: int = 0  # announced SIP signaling port
    listen_port: int = 0  # SIP signaling port to listen on
    certs: List[TLSCert] = field(default_factory=list)


@dataclass
class Config:
    """SIP service configuration."""

    redis: Optional[Dict[str, Any]] = None
    api_key: str = ""
    api_secret: str = ""
    ws_url: str = ""

    health_port: int = 0
    prometheus_port: int = 0
    pprof_port: int = 0
    sip_port: int = 0
    sip_port_listen: int = 0
    sip_hostname: str = ""
    tls: Optional[TLSConfig] = None
    rtp_port: PortRange = field(default_factory=PortRange)
    logging: Dict[str, Any] = field(default_factory=dict)
    cluster_id: str = ""
    max_cpu_utilization: float = 0.0

    use_external_ip: bool = False
    local_net: str = ""
    nat_1_to_1_ip: str = ""
    listen_ip: str = ""

    media_timeout: float = 0.0
    media_timeout_initial: float = 0.0
    codecs: Dict[str, bool] = field(default_factory=dict)

    # Silently drop INVITEs that fail auth or dispatch, hiding the endpoint from scanners.
    hide_inbound_port: bool = False
    # Generate audio DTMF tones in addition to digital events.
    audio_dtmf: bool = False

    service_name: str = "sip"
    node_id: str = ""
    logger: Optional[logging.LoggerAdapter] = field(default=None, repr=False, compare=False)

    def init(self) -> None:
        """Fill in defaults, assign a node ID and set up logging."""
        self.node_id = _new_guid("NE_")
        if self.sip_port == 0:
            self.sip_port = DEFAULT_SIP_PORT
        if self.sip_port_listen == 0:
            self.sip_port_listen = self.sip_port
        if self.tls is not None:
            if self.tls.port == 0:
                self.tls.port = DEFAULT_SIP_PORT_TLS
            if self.tls.listen_port == 0:
                self.tls.listen_port = self.tls.port
        if self.rtp_port.start == 0:
            self.rtp_port.start = DEFAULT_RTP_PORT_RANGE.start
        if self.rtp_port.end == 0:
            self.rtp_port.end = DEFAULT_RTP_PORT_RANGE.end
        if self.max_cpu_utilization <= 0 or self.max_cpu_utilization > 1:
            self.max_cpu_utilization = 0.9

        self.init_logger()

        if self.use_external_ip and self.nat_1_to_1_ip:
            raise ValueError("use_external_ip and nat_1_to_1_ip can not both be set")

    def init_logger(self, *args: Any) -> None:
        """Configure the service logger, adding the key/value pairs in ``args``."""
        level_name = str(self.logging.get("level") or "info").lower()
        level = _LEVELS.get(level_name)
        if level is None:
            raise ValueError(f"unrecognized level: {level_name!r}")
        values = self.logger_values() + list(args)
        if len(values) % 2:
            raise ValueError("logger values must come in key/value pairs")
        base = logging.getLogger(self.service_name)
        base.setLevel(level)
        self.logger = logging.LoggerAdapter(base, dict(zip(values[::2], values[1::2])))

    def logger_values(self) -> List[Any]:
        """Key/value pairs identifying this node in log records."""
        if not self.node_id:
            return []
        return ["nodeID", self.node_id]

    def logger_fields(self) -> Dict[str, Any]:
        """Log fields as a mapping, including the logger name."""
        values = self.logger_values()
        fields: Dict[str, Any] = {"logger": self.service_name}
        fields.update(zip(values[::2], values[1::2]))
        return fields


_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "dpanic": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}

_GUID_ALPHABET = string.ascii_letters + string.digits


def _new_guid(prefix: str) -> str:
    return prefix + "".join(secrets.choice(_GUID_ALPHABET) for _ in range(12))


_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "\u00b5s": 1e-6,
    "\u03bcs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|\u00b5s|\u03bcs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """Parse a duration such as ``"1m30s"`` or ``"300ms"`` into seconds."""
    s = text
    sign = 1.0
    if s[:1] in ("+", "-"):
        sign = -1.0 if s[0] == "-" else 1.0
        s = s[1:]
    if s == "0":
        return 0.0
    if not s:
        raise ValueError(f"time: invalid duration {text!r}")
    total = 0.0
    pos = 0
    while pos < len(s):
        m = _DURATION_PART.match(s, pos)
        if m is None:
            raise ValueError(f"time: invalid duration {text!r}")
        total += float(m.group(1)) * _UNITS[m.group(2)]
        pos = m.end()
    return sign * total


_INT_FIELDS = ("health_port", "prometheus_port", "pprof_port", "sip_port", "sip_port_listen")
_STR_FIELDS = ("api_key", "api_secret", "ws_url", "sip_hostname", "cluster_id",
               "local_net", "nat_1_to_1_ip", "listen_ip")
_BOOL_FIELDS = ("use_external_ip", "hide_inbound_port", "audio_dtmf")
_DURATION_FIELDS = ("media_timeout", "media_timeout_initial")


def _as_int(key: str, value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key}: expected an integer, got {value!r}")
    return value


def _as_str(key: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"{key}: expected a string, got {value!r}")


def _as_bool(key: str, value: Any) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"{key}: expected a boolean, got {value!r}")
    return value


def _as_float(key: str, value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key}: expected a number, got {value!r}")
    return float(value)


def _as_duration(key: str, value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, str):
        return parse_duration(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return value / 1e9
    raise ValueError(f"{key}: expected a duration, got {value!r}")


def _as_mapping(key: str, value: Any) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{key}: expected a mapping, got {value!r}")
    return value


def _parse_tls(value: Any) -> Optional[TLSConfig]:
    if value is None:
        return None
    data = _as_mapping("tls", value)
    certs = data.get("certs") or []
    if not isinstance(certs, list):
        raise ValueError("tls.certs: expected a list")
    return TLSConfig(
        port=_as_int("tls.port", data.get("port")),
        listen_port=_as_int("tls.port_listen", data.get("port_listen")),
        certs=[
            TLSCert(
                cert_file=_as_str("cert_file", _as_mapping("tls.certs", c).get("cert_file")),
                key_file=_as_str("key_file", _as_mapping("tls.certs", c).get("key_file")),
            )
            for c in certs
        ],
    )


def _apply(conf: Config, data: Dict[str, Any]) -> None:
    for key, value in data.items():
        if key in _INT_FIELDS:
            setattr(conf, key, _as_int(key, value))
        elif key in _STR_FIELDS:
            setattr(conf, key, _as_str(key, value))
        elif key in _BOOL_FIELDS:
            setattr(conf, key, _as_bool(key, value))
        elif key in _DURATION_FIELDS:
            setattr(conf, key, _as_duration(key, value))
        elif key == "max_cpu_utilization":
            conf.max_cpu_utilization = _as_float(key, value)
        elif key == "redis":
            conf.redis = None if value is None else _as_mapping(key, value)
        elif key == "tls":
            conf.tls = _parse_tls(value)
        elif key == "rtp_port":
            ports = _as_mapping(key, value)
            conf.rtp_port = PortRange(
                start=_as_int("rtp_port.start", ports.get("start")),
                end=_as_int("rtp_port.end", ports.get("end")),
            )
        elif key == "logging":
            conf.logging = _as_mapping(key, value)
        elif key == "codecs":
            conf.codecs = {
                str(name): _as_bool(f"codecs.{name}", enabled)
                for name, enabled in _as_mapping(key, value).items()
            }


def new_config(text: str) -> Config:
    """Build a configuration from a YAML document and LIVEKIT_* environment variables."""
    conf = Config(
        api_key=os.environ.get("LIVEKIT_API_KEY", ""),
        api_secret=os.environ.get("LIVEKIT_API_SECRET", ""),
        ws_url=os.environ.get("LIVEKIT_WS_URL", ""),
        service_name="sip",
    )
    if text:
        try:
            data = yaml.safe_load(text)
            if data is not None:
                if not isinstance(data, dict):
                    raise ValueError("configuration must be a mapping")
                _apply(conf, data)
        except (yaml.YAMLError, ValueError) as err:
            raise could_not_parse_config(err) from err
    if conf.redis is None:
        raise SIPError(ErrorCode.INVALID_ARGUMENT, "redis configuration is required")
    return conf


def get_local_ip() -> Optional[ipaddress.IPv4Address]:
    """First IPv4 address of an interface that is up, running and not loopback.

    Returns None if interfaces cannot be listed; raises OSError if none qualifies.
    """
    try:
        addrs = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
    except (OSError, psutil.Error):
        return None
    for name, iface_addrs in addrs.items():
        st = stats.get(name)
        if st is None or not st.isup:
            continue
        flags = set(filter(None, str(getattr(st, "flags", "") or "").split(",")))
        if flags and "running" not in flags:
            continue
        if flags & {"loopback", "pointopoint"}:
            continue
        for addr in iface_addrs:
            if addr.family != socket.AF_INET:
                continue
            try:
                ip = ipaddress.IPv4Address(addr.address)
            except ValueError:
                continue
            if not flags and ip.is_loopback:
                continue
            logging.getLogger(__name__).debug("considering interface %s ip %s", name, ip)
            return ip
    raise OSError("No local IP found")