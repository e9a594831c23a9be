#!/usr/bin/env -S uv run --script
# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "requests>=2.32.0",
#     "tabulate>=0.9.0",
#     "pyyaml>=6.0.1",
# ]
# ///
"""Codat Accounting CLI.

Surfaces the Codat accounting API (https://api.codat.io) with filter queries,
bounded pagination and table/json/compact output for companies, connections and
their accounting data.

Usage examples:
    ./scripts/codat_cli.py auth login <api-key>
    ./scripts/codat_cli.py companies list
    ./scripts/codat_cli.py invoices list <company-id> --filter status=Paid --filter 'totalAmount>500' --all
    ./scripts/codat_cli.py --format compact --fields id,status invoices list <company-id>
    ./scripts/codat_cli.py invoices create <company-id> <connection-id> --body '{"customerRef": {...}}' --dry-run
"""

from __future__ import annotations

import argparse
import base64
import json
import logging
import os
import re
import signal
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Sequence, Union
from urllib.parse import urljoin

import requests
import yaml
from tabulate import tabulate

# Prevent BrokenPipeError when piping output
signal.signal(signal.SIGPIPE, signal.SIG_DFL)

API_BASE_URL = "https://api.codat.io"
DEFAULT_CONFIG_FILE = Path.home() / ".config" / "codat-cli" / "config.yaml"
DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 10
REQUEST_TIMEOUT = 30.0
OUTPUT_FORMATS = ("table", "json", "compact")
MIN_API_KEY_LENGTH = 20
BODY_EXCERPT_LIMIT = 500

PLACEHOLDER = "—"
TRUE_GLYPH = "✓"
FALSE_GLYPH = "✗"
MAX_CELL_WIDTH = 50

CONFIG_KEYS = ("api_key", "base_url", "default_page_size", "output_format")
ENV_KEYS = {
    "api_key": "CODAT_API_KEY",
    "base_url": "CODAT_BASE_URL",
    "default_page_size": "CODAT_PAGE_SIZE",
    "output_format": "CODAT_OUTPUT_FORMAT",
}

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


# Errors


class CliError(Exception):
    """A usage problem reported to the user without a traceback."""


class ConfigError(CliError):
    pass


class ErrorKind(str, Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    SERIALIZATION_ERROR = "serialization_error"
    UNKNOWN = "unknown"


RETRYABLE_KINDS = frozenset({ErrorKind.RATE_LIMITED, ErrorKind.SERVER_ERROR, ErrorKind.NETWORK_ERROR})
SERVER_ERROR_STATUSES = frozenset({500, 502, 503})

_STATUS_KINDS = {
    401: (ErrorKind.UNAUTHORIZED, "Invalid API key or authentication failed"),
    403: (ErrorKind.FORBIDDEN, "You do not have permission to access this resource"),
    404: (ErrorKind.NOT_FOUND, "Resource not found"),
}


class ClientError(Exception):
    """A failed API call, classified into one of the ErrorKind members.

    ``detail`` carries structured data for the presentation layer: validation
    errors for BAD_REQUEST, ``retry_after`` for RATE_LIMITED, the transport
    reason for NETWORK_ERROR, a body excerpt for SERIALIZATION_ERROR and the
    status plus raw body for UNKNOWN.
    """

    def __init__(self, kind: ErrorKind, message: str, detail: Optional[Mapping[str, Any]] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.detail: Dict[str, Any] = dict(detail or {})

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @property
    def retry_after(self) -> Any:
        return self.detail.get("retry_after")

    def __repr__(self) -> str:
        return f"ClientError(kind={self.kind.value!r}, message={self.message!r}, detail={self.detail!r})"


def _excerpt(text: str) -> str:
    return text[:BODY_EXCERPT_LIMIT]


def _json_or_none(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


def _body_message(body: Mapping[str, Any]) -> Optional[str]:
    message = body.get("message") or body.get("error")
    return str(message) if message else None


def _retry_after(body: Mapping[str, Any], headers: Mapping[str, str]) -> Any:
    for key in ("Retry-After", "retryAfter"):
        if body.get(key) is not None:
            return body[key]
    return headers.get("Retry-After")


def classify_response(resp: requests.Response) -> ClientError:
    status = resp.status_code
    payload = _json_or_none(resp)
    body = payload if isinstance(payload, dict) else {}

    if status == 400:
        detail: Dict[str, Any] = {}
        validation = body.get("details") or body.get("validation")
        if validation:
            detail["validation"] = validation
        return ClientError(ErrorKind.BAD_REQUEST, _body_message(body) or "Invalid request parameters", detail)

    if status in _STATUS_KINDS:
        kind, message = _STATUS_KINDS[status]
        return ClientError(kind, message)

    if status == 429:
        detail = {}
        retry_after = _retry_after(body, resp.headers)
        if retry_after is not None:
            detail["retry_after"] = retry_after
        return ClientError(ErrorKind.RATE_LIMITED, "Too many requests", detail)

    if status in SERVER_ERROR_STATUSES:
        return ClientError(ErrorKind.SERVER_ERROR, "Codat API is experiencing issues", {"status": status})

    return ClientError(
        ErrorKind.UNKNOWN,
        _body_message(body) or f"Unexpected HTTP status {status}",
        {"status": status, "body": resp.text},
    )


def classify_transport_error(exc: requests.RequestException) -> ClientError:
    if isinstance(exc, requests.Timeout):
        message = "Request timed out"
    elif isinstance(exc, requests.ConnectionError):
        message = "No response from server"
    else:
        message = "Request could not be sent"
    return ClientError(ErrorKind.NETWORK_ERROR, message, {"reason": str(exc)})


def classify(outcome: Union[requests.Response, requests.RequestException]) -> ClientError:
    """Map a failed response or a transport exception onto the error taxonomy."""
    if isinstance(outcome, requests.RequestException):
        return classify_transport_error(outcome)
    return classify_response(outcome)


def parse_body(resp: requests.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError as exc:
        raise ClientError(
            ErrorKind.SERIALIZATION_ERROR,
            "Response body is not valid JSON",
            {"body": _excerpt(resp.text)},
        ) from exc


# Configuration


def build_auth_headers(api_key: str) -> Mapping[str, str]:
    token = base64.b64encode(f"{api_key}:".encode()).decode()
    return MappingProxyType(
        {
            "Authorization": f"Basic {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
    )


@dataclass(frozen=True)
class AppConfig:
    api_key: Optional[str] = field(default=None, repr=False)
    base_url: str = API_BASE_URL
    default_page_size: int = DEFAULT_PAGE_SIZE
    output_format: str = "table"
    request_timeout: float = REQUEST_TIMEOUT
    config_file: Path = DEFAULT_CONFIG_FILE
    debug: bool = False
    api_key_source: Optional[str] = None
    auth_headers: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}), repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if self.api_key and not self.auth_headers:
            object.__setattr__(self, "auth_headers", build_auth_headers(self.api_key))


class ConfigStore:
    """YAML settings file holding the API key and user preferences."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = yaml.safe_load(self.path.read_text()) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(
                f"Config file {self.path} is not valid YAML: {exc}\nRun `codat auth logout` to reset it."
            ) from exc
        if not isinstance(data, dict):
            raise ConfigError(
                f"Config file {self.path} must contain a mapping of settings\nRun `codat auth logout` to reset it."
            )
        return data

    def save(self, data: Mapping[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(yaml.safe_dump(dict(data), sort_keys=True))

    def set(self, key: str, value: Any) -> None:
        data = self.load()
        data[key] = coerce_setting(key, value)
        self.save(data)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


def coerce_setting(key: str, value: Any) -> Any:
    if key not in CONFIG_KEYS:
        raise ConfigError(f"Unknown setting {key!r}. Valid settings: {', '.join(CONFIG_KEYS)}")
    if key == "default_page_size":
        try:
            size = int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"default_page_size must be an integer, got {value!r}") from None
        if size < 1:
            raise ConfigError("default_page_size must be at least 1")
        return size
    if key == "output_format":
        if value not in OUTPUT_FORMATS:
            raise ConfigError(f"Invalid output format {value!r}. Must be one of: {', '.join(OUTPUT_FORMATS)}")
        return value
    if key == "api_key" and not validate_api_key_format(value):
        raise ConfigError(f"Invalid API key format. It should be at least {MIN_API_KEY_LENGTH} characters long.")
    return str(value)


def validate_api_key_format(api_key: Any) -> bool:
    return isinstance(api_key, str) and len(api_key) >= MIN_API_KEY_LENGTH


def mask_api_key(api_key: Optional[str]) -> str:
    if not api_key:
        return "(not set)"
    if len(api_key) <= 8:
        return "*" * len(api_key)
    return f"{api_key[:4]}...{api_key[-4:]}"


def load_config(
    config_file: Path,
    *,
    base_url: Optional[str] = None,
    debug: bool = False,
    request_timeout: float = REQUEST_TIMEOUT,
) -> AppConfig:
    file_data = ConfigStore(config_file).load()

    def pick(key: str) -> tuple[Any, Optional[str]]:
        env_value = os.environ.get(ENV_KEYS[key])
        if env_value:
            return env_value, "environment"
        file_value = file_data.get(key)
        if file_value not in (None, ""):
            return file_value, "config file"
        return None, None

    api_key, api_key_source = pick("api_key")
    page_size, _ = pick("default_page_size")
    output_format, _ = pick("output_format")
    resolved_base_url = base_url or pick("base_url")[0] or API_BASE_URL

    return AppConfig(
        api_key=str(api_key) if api_key else None,
        base_url=str(resolved_base_url).rstrip("/"),
        default_page_size=(
            coerce_setting("default_page_size", page_size) if page_size is not None else DEFAULT_PAGE_SIZE
        ),
        output_format=coerce_setting("output_format", output_format) if output_format else "table",
        request_timeout=request_timeout,
        config_file=config_file,
        debug=debug,
        api_key_source=api_key_source,
    )


def require_auth_headers(config: AppConfig) -> Mapping[str, str]:
    if not config.api_key:
        raise ConfigError(
            "API key not configured. Run `codat auth login <api-key>` "
            f"or set {ENV_KEYS['api_key']}. Get a key from https://app.codat.io/developers/api-keys"
        )
    return config.auth_headers


# Resource client


def api_request(
    method: str,
    config: AppConfig,
    path: str,
    *,
    params: Optional[Mapping[str, Any]] = None,
    json_body: Optional[Any] = None,
) -> Any:
    """Perform one HTTP call and return the decoded JSON body.

    Raises ClientError for transport failures, status codes >= 400 and bodies
    that are not JSON. There is exactly one attempt per call.
    """
    headers = dict(require_auth_headers(config))
    url = urljoin(config.base_url + "/", path.lstrip("/"))
    logger.debug(
        "HTTP %s %s params=%s json_body_present=%s timeout=%s",
        method,
        url,
        params,
        json_body is not None,
        config.request_timeout,
    )
    try:
        resp = requests.request(
            method,
            url,
            params=dict(params) if params else None,
            json=json_body,
            headers=headers,
            timeout=config.request_timeout,
        )
    except requests.RequestException as exc:
        raise classify(exc) from exc

    logger.debug("HTTP %s %s -> %s", method, url, resp.status_code)
    if resp.status_code >= 400:
        raise classify(resp)
    return parse_body(resp)


def read_resource(config: AppConfig, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
    return api_request("GET", config, path, params=params)


def create_resource(config: AppConfig, path: str, body: Optional[Any] = None) -> Any:
    return api_request("POST", config, path, json_body=body if body is not None else {})


def replace_resource(config: AppConfig, path: str, body: Optional[Any] = None) -> Any:
    return api_request("PUT", config, path, json_body=body if body is not None else {})


def delete_resource(config: AppConfig, path: str) -> Any:
    return api_request("DELETE", config, path)


# Pagination


@dataclass(frozen=True)
class Page:
    number: int
    records: List[Record]
    next_link: Optional[str] = None
    total_results: Optional[int] = None

    @classmethod
    def from_payload(cls, number: int, payload: Any) -> "Page":
        if not isinstance(payload, dict):
            raise ClientError(
                ErrorKind.SERIALIZATION_ERROR,
                "Expected a paged result object",
                {"body": _excerpt(json.dumps(payload, default=str))},
            )
        results = payload.get("results")
        if results is None:
            results = []
        if not isinstance(results, list):
            raise ClientError(
                ErrorKind.SERIALIZATION_ERROR,
                "Paged result 'results' is not a list",
                {"body": _excerpt(json.dumps(payload, default=str))},
            )
        return cls(
            number=number,
            records=results,
            next_link=resolve_path(payload, "_links.next.href"),
            total_results=payload.get("totalResults"),
        )


def iter_pages(
    config: AppConfig,
    path: str,
    params: Optional[Mapping[str, Any]] = None,
    *,
    page_size: Optional[int] = None,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> Iterator[Page]:
    """Fetch pages 1..max_pages one at a time, stopping early on the last page.

    A page is the last one when it has no ``_links.next.href`` or no records.
    """
    if max_pages < 1:
        raise ValueError("max_pages must be at least 1")
    base_params = dict(params or {})
    size = page_size or base_params.get("pageSize") or config.default_page_size

    for number in range(1, max_pages + 1):
        payload = read_resource(config, path, {**base_params, "page": number, "pageSize": size})
        page = Page.from_payload(number, payload)
        yield page
        if not page.records or page.next_link is None:
            return
    logger.debug("Stopped after max_pages=%d on %s; more pages may exist", max_pages, path)


def collect_all(
    config: AppConfig,
    path: str,
    params: Optional[Mapping[str, Any]] = None,
    *,
    page_size: Optional[int] = None,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> List[Record]:
    """Return the records of every page in fetch order.

    The first ClientError propagates and nothing fetched before it is
    returned, so callers never see a silently truncated listing.
    """
    records: List[Record] = []
    for page in iter_pages(config, path, params, page_size=page_size, max_pages=max_pages):
        records.extend(page.records)
        logger.debug("Fetched page %d of %s (%d items so far)", page.number, path, len(records))
    return records


# Query builder


class Operator(str, Enum):
    EQUALS = "="
    CONTAINS = "~"
    GREATER_THAN = ">"
    LESS_THAN = "<"


class FilterCriterion(NamedTuple):
    field: str
    operator: Operator
    value: Any


def _query_literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (int, float)):
        return str(value)
    # Embedded double quotes are not escaped; the API rejects such queries.
    return f'"{value}"'


def build_query(criteria: Iterable[Sequence[Any]]) -> str:
    """Serialize (field, operator, value) triples into Codat's query dialect.

    >>> build_query([("status", Operator.EQUALS, "Open"), ("totalAmount", ">", 500)])
    'status="Open"&&totalAmount>500'
    """
    conditions = []
    for field_name, operator, value in criteria:
        try:
            op = Operator(operator)
        except ValueError:
            raise ValueError(f"Unsupported filter operator: {operator!r}") from None
        conditions.append(f"{field_name}{op.value}{_query_literal(value)}")
    return "&&".join(conditions)


_NUMBER_RE = re.compile(r"-?(0|[1-9]\d*)(\.\d+)?")


def _parse_literal(text: str) -> Any:
    if len(text) >= 2 and text[0] == text[-1] == '"':
        return text[1:-1]
    if text in ("true", "false"):
        return text == "true"
    if _NUMBER_RE.fullmatch(text):
        return float(text) if "." in text else int(text)
    return text


def parse_filter(raw: str) -> FilterCriterion:
    """Parse ``field<op>value`` as given to ``--filter``."""
    index = next((i for i, ch in enumerate(raw) if ch in "~><="), -1)
    field_name = raw[:index].strip() if index > 0 else ""
    if not field_name:
        raise ValueError(f"Invalid filter {raw!r}: expected field<op>value with op one of = ~ > <")
    return FilterCriterion(field_name, Operator(raw[index]), _parse_literal(raw[index + 1 :].strip()))


# Output rendering


@dataclass(frozen=True)
class ColumnSpec:
    key: str
    header: Optional[str] = None
    formatter: Optional[Callable[[Any], Any]] = None

    @property
    def label(self) -> str:
        return self.header or self.key


def resolve_path(record: Any, path: str, default: Any = None) -> Any:
    """Look up a dotted path such as ``customerRef.companyName``.

    Segments walk into mappings by key and into lists by decimal index. Any
    missing key, bad index or non-container along the way yields ``default``.
    """
    current = record
    for segment in path.split("."):
        if isinstance(current, Mapping):
            if segment not in current:
                return default
            current = current[segment]
        elif isinstance(current, (list, tuple)) and segment.isdigit():
            index = int(segment)
            if index >= len(current):
                return default
            current = current[index]
        else:
            return default
    return current


def infer_columns(record: Any) -> List[ColumnSpec]:
    if not isinstance(record, Mapping):
        return [ColumnSpec("value")]
    return [ColumnSpec(key) for key, value in record.items() if not isinstance(value, Mapping)]


def format_cell(value: Any) -> str:
    if value is None:
        return PLACEHOLDER
    if isinstance(value, bool):
        return TRUE_GLYPH if value else FALSE_GLYPH
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        return f"[{len(value)} item{'s' if len(value) != 1 else ''}]"
    if isinstance(value, Mapping):
        return "[object]"
    if isinstance(value, str) and len(value) > MAX_CELL_WIDTH:
        return value[: MAX_CELL_WIDTH - 3] + "..."
    return str(value)


def _normalize_columns(columns: Sequence[Union[ColumnSpec, str]]) -> List[ColumnSpec]:
    specs = [col if isinstance(col, ColumnSpec) else ColumnSpec(col) for col in columns]
    seen = set()
    for spec in specs:
        if spec.key in seen:
            raise ValueError(f"Duplicate column key: {spec.key!r}")
        seen.add(spec.key)
    return specs


def _cell(spec: ColumnSpec, record: Any) -> str:
    value = resolve_path(record, spec.key)
    if value is not None and spec.formatter is not None:
        return str(spec.formatter(value))
    return format_cell(value)


def render_table(
    records: Sequence[Any],
    columns: Optional[Sequence[Union[ColumnSpec, str]]] = None,
    title: Optional[str] = None,
) -> str:
    specs = _normalize_columns(columns) if columns else infer_columns(records[0])
    rows = [[_cell(spec, record) for spec in specs] for record in records]
    table = tabulate(rows, headers=[spec.label for spec in specs], tablefmt="github", disable_numparse=True)
    count = len(records)
    lines = [title] if title else []
    lines.append(table)
    lines.append(f"{count} result{'s' if count != 1 else ''}")
    return "\n".join(lines)


def render_json(data: Any, pretty: bool = True) -> str:
    return json.dumps(data, indent=2 if pretty else None, ensure_ascii=False)


def _compact_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def render_compact(records: Sequence[Any], fields: Optional[Sequence[str]] = None) -> str:
    lines = []
    for record in records:
        if fields:
            lines.append(" ".join(f"{name}={_compact_value(resolve_path(record, name))}" for name in fields))
        else:
            lines.append(json.dumps(record, separators=(",", ":"), ensure_ascii=False))
    return "\n".join(lines)


def render(
    data: Any,
    output_format: str = "table",
    *,
    columns: Optional[Sequence[Union[ColumnSpec, str]]] = None,
    fields: Optional[Sequence[str]] = None,
    title: Optional[str] = None,
    pretty: bool = True,
) -> str:
    """Render one record or a list of records as table, json or compact text.

    json is lossless; table and compact summarize. Empty listings render a
    notice in table and compact formats and ``[]`` in json.
    """
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format {output_format!r}. Must be one of: {', '.join(OUTPUT_FORMATS)}")
    if output_format == "json":
        return render_json(data, pretty=pretty)
    if data is None:
        return "No data to display"
    items = list(data) if isinstance(data, (list, tuple)) else [data]
    if not items:
        return "No results found"
    if output_format == "compact":
        return render_compact(items, fields)
    rows = [item if isinstance(item, Mapping) else {"value": item} for item in items]
    return render_table(rows, columns, title)


_ERROR_TITLES = {
    ErrorKind.BAD_REQUEST: "Bad Request",
    ErrorKind.UNAUTHORIZED: "Unauthorized",
    ErrorKind.FORBIDDEN: "Forbidden",
    ErrorKind.NOT_FOUND: "Not Found",
    ErrorKind.RATE_LIMITED: "Rate Limited",
    ErrorKind.SERVER_ERROR: "Server Error",
    ErrorKind.NETWORK_ERROR: "Network Error",
    ErrorKind.SERIALIZATION_ERROR: "Invalid Response",
    ErrorKind.UNKNOWN: "HTTP Error",
}


def describe_error(err: ClientError) -> str:
    lines = [f"{_ERROR_TITLES[err.kind]}: {err.message}"]
    if err.kind is ErrorKind.UNAUTHORIZED:
        lines.append("Hint: check your API key with `codat auth status`")
    elif err.kind is ErrorKind.RATE_LIMITED:
        if err.retry_after is not None:
            lines.append(f"Retry after: {err.retry_after} seconds")
        else:
            lines.append("Please try again later.")
    elif err.kind is ErrorKind.SERVER_ERROR:
        lines.append("Please try again later.")
    elif err.kind is ErrorKind.NETWORK_ERROR:
        lines.append(f"Check your internet connection and try again. ({err.detail.get('reason', '')})")
    elif err.kind is ErrorKind.BAD_REQUEST and "validation" in err.detail:
        lines.append("Details: " + json.dumps(err.detail["validation"], indent=2))
    elif err.kind is ErrorKind.SERIALIZATION_ERROR:
        lines.append(f"Body: {err.detail.get('body', '')}")
    elif err.kind is ErrorKind.UNKNOWN and err.detail.get("body"):
        lines.append(f"Body: {_excerpt(err.detail['body'])}")
    return "\n".join(lines)


# Column definitions


def _date(value: Any) -> str:
    return str(value)[:10]


def _amount(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:.2f}"
    return str(value)


def _count(value: Any) -> str:
    return str(len(value)) if isinstance(value, list) else str(value)


COMPANY_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("name", "Name"),
    ColumnSpec("platform", "Platform"),
    ColumnSpec("dataConnections", "Connections", _count),
    ColumnSpec("created", "Created", _date),
]
CONNECTION_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("integrationId", "Integration ID"),
    ColumnSpec("sourceId", "Source ID"),
    ColumnSpec("platformName", "Platform"),
    ColumnSpec("linkUrl", "Link URL"),
    ColumnSpec("status", "Status"),
    ColumnSpec("created", "Created", _date),
]
ACCOUNT_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("nominalCode", "Code"),
    ColumnSpec("name", "Name"),
    ColumnSpec("type", "Type"),
    ColumnSpec("status", "Status"),
    ColumnSpec("currentBalance", "Balance", _amount),
    ColumnSpec("currency", "Currency"),
]
ACCOUNT_TRANSACTION_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("transactionId", "Transaction"),
    ColumnSpec("date", "Date", _date),
    ColumnSpec("status", "Status"),
    ColumnSpec("currency", "Currency"),
    ColumnSpec("totalAmount", "Amount", _amount),
]
INVOICE_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("invoiceNumber", "Invoice #"),
    ColumnSpec("customerRef.companyName", "Customer"),
    ColumnSpec("issueDate", "Issue Date", _date),
    ColumnSpec("dueDate", "Due Date", _date),
    ColumnSpec("status", "Status"),
    ColumnSpec("totalAmount", "Total", _amount),
    ColumnSpec("currency", "Currency"),
]
CUSTOMER_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("customerName", "Name"),
    ColumnSpec("contactName", "Contact"),
    ColumnSpec("emailAddress", "Email"),
    ColumnSpec("phone", "Phone"),
    ColumnSpec("status", "Status"),
]
SUPPLIER_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("supplierName", "Name"),
    ColumnSpec("contactName", "Contact"),
    ColumnSpec("emailAddress", "Email"),
    ColumnSpec("phone", "Phone"),
    ColumnSpec("status", "Status"),
]
BILL_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("reference", "Reference"),
    ColumnSpec("supplierRef.supplierName", "Supplier"),
    ColumnSpec("issueDate", "Issue Date", _date),
    ColumnSpec("dueDate", "Due Date", _date),
    ColumnSpec("status", "Status"),
    ColumnSpec("totalAmount", "Total", _amount),
    ColumnSpec("currency", "Currency"),
]
BILL_PAYMENT_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("supplierRef.supplierName", "Supplier"),
    ColumnSpec("date", "Date", _date),
    ColumnSpec("totalAmount", "Amount", _amount),
    ColumnSpec("currency", "Currency"),
]
PAYMENT_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("customerRef.companyName", "Customer"),
    ColumnSpec("date", "Date", _date),
    ColumnSpec("totalAmount", "Amount", _amount),
    ColumnSpec("currency", "Currency"),
    ColumnSpec("paymentMethodRef.name", "Method"),
]
PAYMENT_METHOD_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("name", "Name"),
    ColumnSpec("type", "Type"),
    ColumnSpec("status", "Status"),
]
JOURNAL_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("name", "Name"),
    ColumnSpec("type", "Type"),
    ColumnSpec("hasChildren", "Has Children"),
    ColumnSpec("status", "Status"),
]
JOURNAL_ENTRY_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("journalRef.name", "Journal"),
    ColumnSpec("postedOn", "Posted On", _date),
    ColumnSpec("description", "Description"),
    ColumnSpec("recordRef.dataType", "Record Type"),
]
BANK_ACCOUNT_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("accountName", "Name"),
    ColumnSpec("accountNumber", "Number"),
    ColumnSpec("sortCode", "Sort Code"),
    ColumnSpec("currency", "Currency"),
    ColumnSpec("balance", "Balance", _amount),
    ColumnSpec("accountType", "Type"),
]
BANK_TRANSACTION_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("date", "Date", _date),
    ColumnSpec("description", "Description"),
    ColumnSpec("transactionType", "Type"),
    ColumnSpec("amount", "Amount", _amount),
    ColumnSpec("currency", "Currency"),
    ColumnSpec("reconciled", "Reconciled"),
]
TAX_RATE_COLUMNS = [
    ColumnSpec("id", "ID"),
    ColumnSpec("name", "Name"),
    ColumnSpec("totalTaxRate", "Rate (%)", _amount),
    ColumnSpec("effectiveTaxRate", "Effective Rate (%)", _amount),
    ColumnSpec("code", "Code"),
    ColumnSpec("status", "Status"),
]


# Push payload fields: option dest -> API field (dotted names nest)

ACCOUNT_FIELDS = {
    "name": "name",
    "type": "type",
    "currency": "currency",
    "nominal_code": "nominalCode",
    "description": "description",
}
INVOICE_FIELDS = {
    "customer_id": "customerRef.id",
    "issue_date": "issueDate",
    "due_date": "dueDate",
    "currency": "currency",
    "invoice_number": "invoiceNumber",
    "line_items": "lineItems",
}
INVOICE_UPDATE_FIELDS = {"status": "status"}
CUSTOMER_FIELDS = {
    "name": "customerName",
    "contact_name": "contactName",
    "email": "emailAddress",
    "phone": "phone",
    "addresses": "addresses",
}
SUPPLIER_FIELDS = {**CUSTOMER_FIELDS, "name": "supplierName"}
BILL_FIELDS = {
    "supplier_id": "supplierRef.id",
    "issue_date": "issueDate",
    "due_date": "dueDate",
    "currency": "currency",
    "reference": "reference",
    "line_items": "lineItems",
}
PAYMENT_FIELDS = {
    "customer_id": "customerRef.id",
    "date": "date",
    "amount": "totalAmount",
    "currency": "currency",
    "payment_method_id": "paymentMethodRef.id",
    "account_id": "accountRef.id",
    "reference": "reference",
}
JOURNAL_ENTRY_FIELDS = {
    "journal_id": "journalRef.id",
    "posted_on": "postedOn",
    "description": "description",
    "lines": "journalLines",
}
BANK_ACCOUNT_FIELDS = {
    "name": "accountName",
    "account_number": "accountNumber",
    "sort_code": "sortCode",
    "currency": "currency",
    "account_type": "accountType",
}


# Command helpers


def parse_json_body(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CliError(f"Invalid JSON body: {exc}") from exc


def _fields(args: argparse.Namespace) -> Optional[List[str]]:
    raw = getattr(args, "fields", None)
    if not raw:
        return None
    names = [name.strip() for name in raw.split(",") if name.strip()]
    return list(dict.fromkeys(names)) or None


def emit(
    args: argparse.Namespace,
    config: AppConfig,
    data: Any,
    *,
    columns: Optional[Sequence[ColumnSpec]] = None,
    default_format: Optional[str] = None,
    title: Optional[str] = None,
) -> None:
    output_format = getattr(args, "format", None) or default_format or config.output_format
    fields = _fields(args)
    print(
        render(
            data,
            output_format,
            columns=fields or columns,
            fields=fields,
            title=title,
            pretty=not getattr(args, "no_pretty", False),
        )
    )


def build_list_query(args: argparse.Namespace) -> Optional[str]:
    parts = []
    filters = getattr(args, "filters", None)
    if filters:
        parts.append(build_query(filters))
    if getattr(args, "query", None):
        parts.append(args.query)
    return "&&".join(parts) or None


def list_params(args: argparse.Namespace, config: AppConfig) -> Dict[str, Any]:
    params: Dict[str, Any] = {
        "page": args.page,
        "pageSize": args.page_size or config.default_page_size,
    }
    query = build_list_query(args)
    if query:
        params["query"] = query
    if getattr(args, "order_by", None):
        params["orderBy"] = args.order_by
    return params


def fetch_list(args: argparse.Namespace, config: AppConfig, path: str) -> List[Record]:
    params = list_params(args, config)
    if getattr(args, "all", False):
        params.pop("page")
        page_size = params.pop("pageSize")
        return collect_all(config, path, params, page_size=page_size, max_pages=args.max_pages)
    payload = read_resource(config, path, params)
    return Page.from_payload(args.page, payload).records


def list_command(args: argparse.Namespace, config: AppConfig, path: str, columns: Sequence[ColumnSpec]) -> None:
    emit(args, config, fetch_list(args, config, path), columns=columns)


def get_command(
    args: argparse.Namespace,
    config: AppConfig,
    path: str,
    params: Optional[Mapping[str, Any]] = None,
    *,
    title: Optional[str] = None,
) -> None:
    emit(args, config, read_resource(config, path, params), default_format="json", title=title)


def build_payload(args: argparse.Namespace, field_map: Mapping[str, str]) -> Dict[str, Any]:
    """Collect the options that were given, keyed by their API field name.

    A dotted field such as ``customerRef.id`` nests the value under
    ``customerRef``.
    """
    payload: Dict[str, Any] = {}
    for dest, api_field in field_map.items():
        value = getattr(args, dest, None)
        if value is None or value == "" or value == []:
            continue
        *parents, leaf = api_field.split(".")
        target = payload
        for parent in parents:
            target = target.setdefault(parent, {})
        target[leaf] = value
    return payload


def resolve_body(
    args: argparse.Namespace, field_map: Mapping[str, str], *, required: Sequence[str] = ()
) -> Any:
    """Return the push payload: ``--body`` as given, else built from field options."""
    if getattr(args, "body", None):
        return parse_json_body(args.body)
    missing = [dest for dest in required if getattr(args, dest, None) in (None, "")]
    if missing:
        flags = ", ".join(f"--{dest.replace('_', '-')}" for dest in missing)
        raise CliError(f"Missing required option(s): {flags}. Pass them or a full payload with --body.")
    payload = build_payload(args, field_map)
    if not payload:
        raise CliError("No fields to update. Pass field options or a full payload with --body.")
    return payload


def push_command(
    args: argparse.Namespace, config: AppConfig, path: str, body: Any, *, replace: bool = False
) -> None:
    if args.dry_run:
        print(json.dumps(body, indent=2))
        return
    if replace:
        data = replace_resource(config, path, body)
    else:
        data = create_resource(config, path, body)
    emit(args, config, data, default_format="json")


def delete_command(args: argparse.Namespace, config: AppConfig, path: str, label: str) -> None:
    if args.dry_run:
        print(f"[dry-run] Would delete {label}")
        return
    delete_resource(config, path)
    print(f"Deleted {label}")


def _data_path(args: argparse.Namespace, resource: str) -> str:
    return f"/companies/{args.company_id}/data/{resource}"


def _push_path(args: argparse.Namespace, resource: str) -> str:
    return f"/companies/{args.company_id}/connections/{args.connection_id}/push/{resource}"


# Handlers for subcommands


def handle_auth_login(args: argparse.Namespace, config: AppConfig) -> None:
    if not args.api_key:
        print("To get your API key:")
        print("  1. Go to https://app.codat.io/developers/api-keys")
        print("  2. Create a new API key or copy an existing one")
        print("  3. Run: codat auth login <your_api_key>")
        print(f"\nAlternatively, set the {ENV_KEYS['api_key']} environment variable.")
        return
    store = ConfigStore(config.config_file)
    store.set("api_key", args.api_key)
    print(f"API key saved to {store.path}")


def handle_auth_status(args: argparse.Namespace, config: AppConfig) -> None:
    if not config.api_key:
        print("Not authenticated")
        print("Run: codat auth login <your_api_key>")
        return
    print("Authenticated")
    print(f"  API key: {mask_api_key(config.api_key)}")
    print(f"  Source:  {config.api_key_source}")
    print(f"  Config:  {config.config_file}")


def handle_auth_logout(args: argparse.Namespace, config: AppConfig) -> None:
    store = ConfigStore(config.config_file)
    if not store.path.exists():
        print("No stored credentials to remove")
        return
    store.clear()
    print("Credentials removed")


def handle_auth_config(args: argparse.Namespace, config: AppConfig) -> None:
    settings = {
        "api_key": mask_api_key(config.api_key),
        "base_url": config.base_url,
        "default_page_size": config.default_page_size,
        "output_format": config.output_format,
    }
    print(f"Location: {config.config_file}")
    print(yaml.safe_dump(settings, sort_keys=False).rstrip())


def handle_auth_set(args: argparse.Namespace, config: AppConfig) -> None:
    store = ConfigStore(config.config_file)
    store.set(args.key, args.value)
    shown = mask_api_key(args.value) if args.key == "api_key" else args.value
    print(f"Set {args.key}={shown} in {store.path}")


def handle_companies_list(args: argparse.Namespace, config: AppConfig) -> None:
    list_command(args, config, "/companies", COMPANY_COLUMNS)


def handle_companies_get(args: argparse.Namespace, config: AppConfig) -> None:
    get_command(args, config, f"/companies/{args.company_id}")


def handle_companies_create(args: argparse.Namespace, config: AppConfig) -> None:
    body = {"name": args.name}
    if args.description:
        body["description"] = args.description
    if args.dry_run:
        print(json.dumps(body, indent=2))
        return
    emit(args, config, create_resource(config, "/companies", body), default_format="json")


def handle_companies_update(args: argparse.Namespace, config: AppConfig) -> None:
    body = {"name": args.name, "description": args.description}
    body = {k: v for k, v in body.items() if v}
    if not body:
        raise CliError("No fields to update. Pass --name and/or --description.")
    if args.dry_run:
        print(json.dumps(body, indent=2))
        return
    emit(args, config, replace_resource(config, f"/companies/{args.company_id}", body), default_format="json")


def handle_companies_delete(args: argparse.Namespace, config: AppConfig) -> None:
    delete_command(args, config, f"/companies/{args.company_id}", f"company {args.company_id}")


def handle_connections_list(args: argparse.Namespace, config: AppConfig) -> None:
    list_command(args, config, f"/companies/{args.company_id}/connections", CONNECTION_COLUMNS)


def handle_connections_get(args: argparse.Namespace, config: AppConfig) -> None:
    get_command(args, config, f"/companies/{args.company_id}/connections/{args.connection_id}")


def handle_connections_create(args: argparse.Namespace, config: AppConfig) -> None:
    body = {"platformKey": args.platform_key}
    if args.dry_run:
        print(json.dumps(body, indent=2))
        return
    data = create_resource(config, f"/companies/{args.company_id}/connections", body)
    emit(args, config, data, default_format="json")
    print("Next: direct the user to the linkUrl to authorize the connection.", file=sys.stderr)


def handle_connections_delete(args: argparse.Namespace, config: AppConfig) -> None:
    delete_command(
        args,
        config,
        f"/companies/{args.company_id}/connections/{args.connection_id}",
        f"connection {args.connection_id}",
    )


def handle_connections_unlink(args: argparse.Namespace, config: AppConfig) -> None:
    if args.dry_run:
        print(f"[dry-run] Would unlink connection {args.connection_id}")
        return
    create_resource(config, f"/companies/{args.company_id}/connections/{args.connection_id}/unlink", {})
    print(f"Unlinked connection {args.connection_id}")


def handle_accounts_list(args: argparse.Namespace, config: AppConfig) -> None:
    list_command(args, config, _data_path(args, "accounts"), ACCOUNT_COLUMNS)


def handle_accounts_get(args: argparse.Namespace, config: AppConfig) -> None:
    get_command(args, config, f"{_data_path(args, 'accounts')}/{args.id}")


def handle_accounts_create(args: argparse.Namespace, config: AppConfig) -> None:
    body = resolve_body(args, ACCOUNT_FIELDS, required=("name", "type"))
    push_command(args, config, _push_path(args, "accounts"), body)


def handle_accounts_transactions(args: argparse.Namespace, config: AppConfig) -> None:
    path = f"/companies/{args.company_id}/connections/{args.connection_id}/data/accountTransactions"
    list_command(args, config, path, ACCOUNT_TRANSACTION_COLUMNS)


def handle_invoices_list(args: argparse.Namespace, config: AppConfig) -> None:
    list_command(args, config, _data_path(args, "invoices"), INVOICE_COLUMNS)


def handle_invoices_get(args: argparse.Namespace, config: AppConfig) -> None:
    get_command(args, config, f"{_data_path(args, 'invoices')}/{args.id}")


def handle_invoices_create(args: argparse.Namespace, config: AppConfig) -> None:
    body = resolve_body(args, INVOICE_FIELDS, required=("customer_id", "issue_date", "due_date"))
    push_command(args, config, _push_path(args, "invoices"), body)


def handle_invoices_update(args: argparse.Namespace, config: AppConfig) -> None:
    body = resolve_body(args, INVOICE_UPDATE_FIELDS)
    push_command(args, config, f"{_push_path(args, 'invoices')}/{args.id}", body, replace=True)


def handle_invoices_pdf(args: argparse.Namespace, config: AppConfig) -> None:
    data = read_resource(config, f"{_data_path(args, 'invoices')}/{args.id}/pdf")
    url = resolve_path(data, "url")
    if url:
        print(f"PDF download link:\n{url}")
    else:
        print("PDF not available for this invoice")


def handle_customers_list(args: argparse.Namespace, config: AppConfig) -> None:
    list_command(args, config, _data_path(args, "customers"), CUSTOMER_COLUMNS)


def handle_customers_get(args: argparse.Namespace, config: AppConfig) -> None:
    get_command(args, config, f"{_data_path(args, 'customers')}/{args.id}")


def handle_customers_create(args: argparse.Namespace, config: AppConfig) -> None:
    body = resolve_body(args, CUSTOMER_FIELDS, required=("name",))
    push_command(args, config, _push_path(args, "customers"), body)


def handle_customers_update(args: argparse.Namespace, config: AppConfig) -> None:
    body = resolve_body(args, CUSTOMER_FIELDS)
    push_command(args, config, f"{_push_path(args, 'customers')}/{args.id}", body, replace=True)


def handle_suppliers_list(args: argparse.Namespace, config: AppConfig) -> None:
    list_command(args, config, _data_path(args, "suppliers"), SUPPLIER_COLUMNS)


def handle_suppliers_get(args: argparse.Namespace, config: AppConfig) -> None:
    get_command(args, config, f"{_data_path(args, 'suppliers')}/{args.id}")


def handle_suppliers_create(args: argparse.Namespace, config: AppConfig) -> None:
    body = resolve_body(args, SUPPLIER_FIELDS, required=("name",))
    push_command(args, config, _push_path(args, "suppliers"), body)


def handle_suppliers_update(args: argparse.Namespace, config: AppConfig) -> None:
    body = resolve_body(args, SUPPLIER_FIELDS)
    push_command(args, config, f"{_push_path(args, 'suppliers')}/{args.id}", body, replace=True)


def handle_bills_list(args: argparse.Namespace, config: AppConfig) -> None:
    list_command(args, config, _data_path(args, "bills"), BILL_COLUMNS)


def handle_bills_get(args: argparse.Namespace, config: AppConfig) -> None:
    get_command(args, config, f"{_data_path(args, 'bills')}/{args.id}")


def handle_bills_create(args: argparse.Namespace, config: AppConfig) -> None:
    body = resolve_body(args, BILL_FIELDS, required=("supplier_id", "issue_date", "due_date"))
    push_command(args, config, _push_path(args, "bills"), body)


def handle_bills_payments(args: argparse.Namespace, config: AppConfig) -> None:
    list_command(args, config, _data_path(args, "billPayments"), BILL_PAYMENT_COLUMNS)


def handle_payments_list(args: argparse.Namespace, config: AppConfig) -> None:
    list_command(args, config, _data_path(args, "payments"), PAYMENT_COLUMNS)


def handle_payments_get(args: argparse.Namespace, config: AppConfig) -> None:
    get_command(args, config, f"{_data_path(args, 'payments')}/{args.id}")


def handle_payments_create(args: argparse.Namespace, config: AppConfig) -> None:
    body = resolve_body(args, PAYMENT_FIELDS, required=("customer_id", "date", "amount"))
    push_command(args, config, _push_path(args, "payments"), body)


def handle_payments_methods(args: argparse.Namespace, config: AppConfig) -> None:
    list_command(args, config, _data_path(args, "paymentMethods"), PAYMENT_METHOD_COLUMNS)


def handle_journals_list(args: argparse.Namespace, config: AppConfig) -> None:
    list_command(args, config, _data_path(args, "journals"), JOURNAL_COLUMNS)


def handle_journals_get(args: argparse.Namespace, config: AppConfig) -> None:
    get_command(args, config, f"{_data_path(args, 'journals')}/{args.id}")


def handle_journals_entries(args: argparse.Namespace, config: AppConfig) -> None:
    list_command(args, config, _data_path(args, "journalEntries"), JOURNAL_ENTRY_COLUMNS)


def handle_journals_entry(args: argparse.Namespace, config: AppConfig) -> None:
    get_command(args, config, f"{_data_path(args, 'journalEntries')}/{args.id}")


def handle_journals_create_entry(args: argparse.Namespace, config: AppConfig) -> None:
    body = resolve_body(args, JOURNAL_ENTRY_FIELDS, required=("journal_id", "posted_on", "lines"))
    push_command(args, config, _push_path(args, "journalEntries"), body)


def handle_bank_accounts_list(args: argparse.Namespace, config: AppConfig) -> None:
    list_command(args, config, _data_path(args, "bankAccounts"), BANK_ACCOUNT_COLUMNS)


def handle_bank_accounts_get(args: argparse.Namespace, config: AppConfig) -> None:
    get_command(args, config, f"{_data_path(args, 'bankAccounts')}/{args.id}")


def handle_bank_accounts_create(args: argparse.Namespace, config: AppConfig) -> None:
    body = resolve_body(args, BANK_ACCOUNT_FIELDS, required=("name",))
    push_command(args, config, _push_path(args, "bankAccounts"), body)


def handle_bank_accounts_transactions(args: argparse.Namespace, config: AppConfig) -> None:
    path = (
        f"/companies/{args.company_id}/connections/{args.connection_id}"
        f"/data/bankAccounts/{args.id}/bankTransactions"
    )
    list_command(args, config, path, BANK_TRANSACTION_COLUMNS)


def handle_tax_rates_list(args: argparse.Namespace, config: AppConfig) -> None:
    list_command(args, config, _data_path(args, "taxRates"), TAX_RATE_COLUMNS)


def handle_tax_rates_get(args: argparse.Namespace, config: AppConfig) -> None:
    get_command(args, config, f"{_data_path(args, 'taxRates')}/{args.id}")


def _financial_params(args: argparse.Namespace) -> Dict[str, Any]:
    params = {
        "periodLength": args.period_length,
        "periodsToCompare": args.periods_to_compare,
        "startMonth": args.start_month,
    }
    return {k: v for k, v in params.items() if v not in (None, "")}


def _aged_params(args: argparse.Namespace) -> Dict[str, Any]:
    params = {
        "reportDate": args.report_date,
        "numberOfPeriods": args.number_of_periods,
        "periodLengthDays": args.period_length_days,
    }
    return {k: v for k, v in params.items() if v not in (None, "")}


def handle_reports_balance_sheet(args: argparse.Namespace, config: AppConfig) -> None:
    path = _data_path(args, "financials/balanceSheet")
    get_command(args, config, path, _financial_params(args), title="Balance Sheet")


def handle_reports_profit_loss(args: argparse.Namespace, config: AppConfig) -> None:
    path = _data_path(args, "financials/profitAndLoss")
    get_command(args, config, path, _financial_params(args), title="Profit and Loss")


def handle_reports_cash_flow(args: argparse.Namespace, config: AppConfig) -> None:
    path = _data_path(args, "financials/cashFlowStatement")
    get_command(args, config, path, _financial_params(args), title="Cash Flow Statement")


def handle_reports_aged_debtors(args: argparse.Namespace, config: AppConfig) -> None:
    path = _data_path(args, "aged/debtors")
    get_command(args, config, path, _aged_params(args), title="Aged Debtors")


def handle_reports_aged_creditors(args: argparse.Namespace, config: AppConfig) -> None:
    path = _data_path(args, "aged/creditors")
    get_command(args, config, path, _aged_params(args), title="Aged Creditors")


# Parser


def _positive_int(raw: str) -> int:
    value = int(raw)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def _positive_float(raw: str) -> float:
    value = float(raw)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {value}")
    return value


def _add_list_arguments(parser: argparse.ArgumentParser, *, order_by: bool = True) -> None:
    parser.add_argument("--query", help='Raw Codat query, e.g. status="Paid"')
    parser.add_argument(
        "--filter",
        dest="filters",
        action="append",
        type=parse_filter,
        default=[],
        metavar="FIELD<OP>VALUE",
        help="Filter criterion (op: = ~ > <); repeat to AND several",
    )
    if order_by:
        parser.add_argument("--order-by", help="Order by field")
    parser.add_argument(
        "--all",
        action="store_true",
        help="Fetch every page (bounded by --max-pages) instead of a single page",
    )


def _json_argument(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise argparse.ArgumentTypeError(f"invalid JSON: {exc}") from exc


def _add_push_arguments(parser: argparse.ArgumentParser, body_help: str, *, aliases: Sequence[str] = ()) -> None:
    parser.add_argument(
        "--body", *aliases, dest="body", help=f"Full JSON payload, overrides the field options. {body_help}"
    )
    parser.add_argument("--dry-run", action="store_true", help="Print the payload without calling the API")


def _add_contact_arguments(parser: argparse.ArgumentParser, *, required_name: bool) -> None:
    name_help = "Name (required unless --body is given)" if required_name else "Name"
    parser.add_argument("-n", "--name", help=name_help)
    parser.add_argument("--contact-name", help="Contact name")
    parser.add_argument("--email", help="Email address")
    parser.add_argument("--phone", help="Phone number")


def _add_dry_run(parser: argparse.ArgumentParser, help_text: str = "Preview without calling the API") -> None:
    parser.add_argument("--dry-run", action="store_true", help=help_text)


def _add_financial_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("company_id", help="Company ID")
    parser.add_argument("--period-length", type=_positive_int, required=True, help="Period length (months)")
    parser.add_argument("--periods-to-compare", type=_positive_int, required=True, help="Number of periods")
    parser.add_argument("--start-month", help="Start month (YYYY-MM-DD)")


def _add_aged_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("company_id", help="Company ID")
    parser.add_argument("--report-date", help="Report date (YYYY-MM-DD)")
    parser.add_argument("--number-of-periods", type=_positive_int, help="Number of aging periods")
    parser.add_argument("--period-length-days", type=_positive_int, help="Length of each period in days")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Codat Accounting CLI")
    parser.add_argument(
        "--config-file",
        default=os.environ.get("CODAT_CONFIG_FILE") or str(DEFAULT_CONFIG_FILE),
        help=f"Path to YAML config file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument("--base-url", default=None, help="Override API base URL")
    parser.add_argument(
        "--format",
        default=None,
        choices=OUTPUT_FORMATS,
        help="Output format (default: configured output_format, json for single records)",
    )
    parser.add_argument("--fields", help="Comma-separated dotted fields for compact output")
    parser.add_argument("--no-pretty", action="store_true", help="Single-line JSON output")
    parser.add_argument("--page", type=_positive_int, default=1, help="Page number for list commands")
    parser.add_argument(
        "--page-size",
        type=_positive_int,
        default=None,
        help=f"Items per page (default: configured default_page_size, {DEFAULT_PAGE_SIZE})",
    )
    parser.add_argument(
        "--max-pages",
        type=_positive_int,
        default=DEFAULT_MAX_PAGES,
        help=f"Maximum number of pages fetched by --all (default: {DEFAULT_MAX_PAGES})",
    )
    parser.add_argument(
        "--timeout",
        type=_positive_float,
        default=REQUEST_TIMEOUT,
        help=f"HTTP connect/read timeout in seconds (default: {REQUEST_TIMEOUT:g})",
    )
    parser.add_argument("--debug", action="store_true", help="Log HTTP calls and pagination to stderr")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Auth
    auth = subparsers.add_parser("auth", help="Manage API credentials and settings")
    auth_sub = auth.add_subparsers(dest="action", required=True)

    auth_login = auth_sub.add_parser("login", help="Save an API key")
    auth_login.add_argument("api_key", nargs="?", help="Codat API key")
    auth_login.set_defaults(func=handle_auth_login)

    auth_status = auth_sub.add_parser("status", help="Show authentication status")
    auth_status.set_defaults(func=handle_auth_status)

    auth_logout = auth_sub.add_parser("logout", help="Remove stored credentials and settings")
    auth_logout.set_defaults(func=handle_auth_logout, ignore_config_errors=True)

    auth_config = auth_sub.add_parser("config", help="Show effective settings")
    auth_config.set_defaults(func=handle_auth_config)

    auth_set = auth_sub.add_parser("set", help="Store a setting in the config file")
    auth_set.add_argument("key", choices=CONFIG_KEYS, help="Setting name")
    auth_set.add_argument("value", help="Setting value")
    auth_set.set_defaults(func=handle_auth_set)

    # Companies
    companies = subparsers.add_parser("companies", help="Company operations")
    companies_sub = companies.add_subparsers(dest="action", required=True)

    companies_list = companies_sub.add_parser("list", help="List companies")
    _add_list_arguments(companies_list)
    companies_list.set_defaults(func=handle_companies_list)

    companies_get = companies_sub.add_parser("get", help="Get a company")
    companies_get.add_argument("company_id", help="Company ID")
    companies_get.set_defaults(func=handle_companies_get)

    companies_create = companies_sub.add_parser("create", help="Create a company")
    companies_create.add_argument("name", help="Company name")
    companies_create.add_argument("--description", help="Company description")
    _add_dry_run(companies_create)
    companies_create.set_defaults(func=handle_companies_create)

    companies_update = companies_sub.add_parser("update", help="Update a company")
    companies_update.add_argument("company_id", help="Company ID")
    companies_update.add_argument("--name", help="Company name")
    companies_update.add_argument("--description", help="Company description")
    _add_dry_run(companies_update)
    companies_update.set_defaults(func=handle_companies_update)

    companies_delete = companies_sub.add_parser("delete", help="Delete a company")
    companies_delete.add_argument("company_id", help="Company ID")
    _add_dry_run(companies_delete, "Preview deletion without calling the API")
    companies_delete.set_defaults(func=handle_companies_delete)

    # Connections
    connections = subparsers.add_parser("connections", help="Data connection operations")
    connections_sub = connections.add_subparsers(dest="action", required=True)

    connections_list = connections_sub.add_parser("list", help="List connections for a company")
    connections_list.add_argument("company_id", help="Company ID")
    _add_list_arguments(connections_list, order_by=False)
    connections_list.set_defaults(func=handle_connections_list)

    connections_get = connections_sub.add_parser("get", help="Get a connection")
    connections_get.add_argument("company_id", help="Company ID")
    connections_get.add_argument("connection_id", help="Connection ID")
    connections_get.set_defaults(func=handle_connections_get)

    connections_create = connections_sub.add_parser("create", help="Create a connection")
    connections_create.add_argument("company_id", help="Company ID")
    connections_create.add_argument(
        "--platform-key", default="gbol", help="Platform key (default: gbol, QuickBooks Online)"
    )
    _add_dry_run(connections_create)
    connections_create.set_defaults(func=handle_connections_create)

    connections_delete = connections_sub.add_parser("delete", help="Delete a connection")
    connections_delete.add_argument("company_id", help="Company ID")
    connections_delete.add_argument("connection_id", help="Connection ID")
    _add_dry_run(connections_delete, "Preview deletion without calling the API")
    connections_delete.set_defaults(func=handle_connections_delete)

    connections_unlink = connections_sub.add_parser("unlink", help="Unlink a connection (soft delete)")
    connections_unlink.add_argument("company_id", help="Company ID")
    connections_unlink.add_argument("connection_id", help="Connection ID")
    _add_dry_run(connections_unlink)
    connections_unlink.set_defaults(func=handle_connections_unlink)

    # Accounts
    accounts = subparsers.add_parser("accounts", help="Chart of accounts operations")
    accounts_sub = accounts.add_subparsers(dest="action", required=True)

    accounts_list = accounts_sub.add_parser("list", help="List accounts")
    accounts_list.add_argument("company_id", help="Company ID")
    _add_list_arguments(accounts_list)
    accounts_list.set_defaults(func=handle_accounts_list)

    accounts_get = accounts_sub.add_parser("get", help="Get an account")
    accounts_get.add_argument("company_id", help="Company ID")
    accounts_get.add_argument("id", help="Account ID")
    accounts_get.set_defaults(func=handle_accounts_get)

    accounts_create = accounts_sub.add_parser("create", help="Create an account")
    accounts_create.add_argument("company_id", help="Company ID")
    accounts_create.add_argument("connection_id", help="Connection ID")
    accounts_create.add_argument("-n", "--name", help="Account name (required unless --body is given)")
    accounts_create.add_argument(
        "-t", "--type", help="Account type: Asset, Liability, Equity, Income, Expense (required unless --body)"
    )
    accounts_create.add_argument("-c", "--nominal-code", help="Nominal/account code")
    accounts_create.add_argument("--currency", default="USD", help="Currency code (default: USD)")
    accounts_create.add_argument("-d", "--description", help="Account description")
    _add_push_arguments(accounts_create, 'Example: {"name": "...", "type": "Asset", "currency": "USD"}')
    accounts_create.set_defaults(func=handle_accounts_create)

    accounts_txns = accounts_sub.add_parser("transactions", help="List account transactions")
    accounts_txns.add_argument("company_id", help="Company ID")
    accounts_txns.add_argument("connection_id", help="Connection ID")
    _add_list_arguments(accounts_txns, order_by=False)
    accounts_txns.set_defaults(func=handle_accounts_transactions)

    # Invoices
    invoices = subparsers.add_parser("invoices", help="Sales invoice operations")
    invoices_sub = invoices.add_subparsers(dest="action", required=True)

    invoices_list = invoices_sub.add_parser("list", help="List invoices")
    invoices_list.add_argument("company_id", help="Company ID")
    _add_list_arguments(invoices_list)
    invoices_list.set_defaults(func=handle_invoices_list)

    invoices_get = invoices_sub.add_parser("get", help="Get an invoice")
    invoices_get.add_argument("company_id", help="Company ID")
    invoices_get.add_argument("id", help="Invoice ID")
    invoices_get.set_defaults(func=handle_invoices_get)

    invoices_create = invoices_sub.add_parser("create", help="Create an invoice")
    invoices_create.add_argument("company_id", help="Company ID")
    invoices_create.add_argument("connection_id", help="Connection ID")
    invoices_create.add_argument("--customer-id", help="Customer ID (required unless --body is given)")
    invoices_create.add_argument("--issue-date", help="Issue date YYYY-MM-DD (required unless --body is given)")
    invoices_create.add_argument("--due-date", help="Due date YYYY-MM-DD (required unless --body is given)")
    invoices_create.add_argument("--invoice-number", help="Invoice number")
    invoices_create.add_argument("--currency", default="USD", help="Currency code (default: USD)")
    invoices_create.add_argument("--line-items", type=_json_argument, help="Line items as a JSON array")
    _add_push_arguments(
        invoices_create,
        'Example: {"customerRef": {"id": "..."}, "issueDate": "...", "dueDate": "...", "lineItems": [...]}',
    )
    invoices_create.set_defaults(func=handle_invoices_create)

    invoices_update = invoices_sub.add_parser("update", help="Update an invoice")
    invoices_update.add_argument("company_id", help="Company ID")
    invoices_update.add_argument("connection_id", help="Connection ID")
    invoices_update.add_argument("id", help="Invoice ID")
    invoices_update.add_argument("--status", help="Invoice status")
    _add_push_arguments(invoices_update, 'Example: {"status": "..."}', aliases=("--data",))
    invoices_update.set_defaults(func=handle_invoices_update)

    invoices_pdf = invoices_sub.add_parser("pdf", help="Get an invoice PDF download link")
    invoices_pdf.add_argument("company_id", help="Company ID")
    invoices_pdf.add_argument("id", help="Invoice ID")
    invoices_pdf.set_defaults(func=handle_invoices_pdf)

    # Customers
    customers = subparsers.add_parser("customers", help="Customer operations")
    customers_sub = customers.add_subparsers(dest="action", required=True)

    customers_list = customers_sub.add_parser("list", help="List customers")
    customers_list.add_argument("company_id", help="Company ID")
    _add_list_arguments(customers_list)
    customers_list.set_defaults(func=handle_customers_list)

    customers_get = customers_sub.add_parser("get", help="Get a customer")
    customers_get.add_argument("company_id", help="Company ID")
    customers_get.add_argument("id", help="Customer ID")
    customers_get.set_defaults(func=handle_customers_get)

    customers_create = customers_sub.add_parser("create", help="Create a customer")
    customers_create.add_argument("company_id", help="Company ID")
    customers_create.add_argument("connection_id", help="Connection ID")
    _add_contact_arguments(customers_create, required_name=True)
    customers_create.add_argument(
        "--address",
        dest="addresses",
        action="append",
        type=_json_argument,
        help="Address as a JSON object; repeat for several",
    )
    _add_push_arguments(customers_create, 'Example: {"customerName": "...", "emailAddress": "..."}')
    customers_create.set_defaults(func=handle_customers_create)

    customers_update = customers_sub.add_parser("update", help="Update a customer")
    customers_update.add_argument("company_id", help="Company ID")
    customers_update.add_argument("connection_id", help="Connection ID")
    customers_update.add_argument("id", help="Customer ID")
    _add_contact_arguments(customers_update, required_name=False)
    _add_push_arguments(customers_update, 'Example: {"customerName": "..."}')
    customers_update.set_defaults(func=handle_customers_update)

    # Suppliers
    suppliers = subparsers.add_parser("suppliers", help="Supplier operations")
    suppliers_sub = suppliers.add_subparsers(dest="action", required=True)

    suppliers_list = suppliers_sub.add_parser("list", help="List suppliers")
    suppliers_list.add_argument("company_id", help="Company ID")
    _add_list_arguments(suppliers_list)
    suppliers_list.set_defaults(func=handle_suppliers_list)

    suppliers_get = suppliers_sub.add_parser("get", help="Get a supplier")
    suppliers_get.add_argument("company_id", help="Company ID")
    suppliers_get.add_argument("id", help="Supplier ID")
    suppliers_get.set_defaults(func=handle_suppliers_get)

    suppliers_create = suppliers_sub.add_parser("create", help="Create a supplier")
    suppliers_create.add_argument("company_id", help="Company ID")
    suppliers_create.add_argument("connection_id", help="Connection ID")
    _add_contact_arguments(suppliers_create, required_name=True)
    suppliers_create.add_argument(
        "--address",
        dest="addresses",
        action="append",
        type=_json_argument,
        help="Address as a JSON object; repeat for several",
    )
    _add_push_arguments(suppliers_create, 'Example: {"supplierName": "...", "emailAddress": "..."}')
    suppliers_create.set_defaults(func=handle_suppliers_create)

    suppliers_update = suppliers_sub.add_parser("update", help="Update a supplier")
    suppliers_update.add_argument("company_id", help="Company ID")
    suppliers_update.add_argument("connection_id", help="Connection ID")
    suppliers_update.add_argument("id", help="Supplier ID")
    _add_contact_arguments(suppliers_update, required_name=False)
    _add_push_arguments(suppliers_update, 'Example: {"supplierName": "..."}')
    suppliers_update.set_defaults(func=handle_suppliers_update)

    # Bills
    bills = subparsers.add_parser("bills", help="Bill (accounts payable) operations")
    bills_sub = bills.add_subparsers(dest="action", required=True)

    bills_list = bills_sub.add_parser("list", help="List bills")
    bills_list.add_argument("company_id", help="Company ID")
    _add_list_arguments(bills_list)
    bills_list.set_defaults(func=handle_bills_list)

    bills_get = bills_sub.add_parser("get", help="Get a bill")
    bills_get.add_argument("company_id", help="Company ID")
    bills_get.add_argument("id", help="Bill ID")
    bills_get.set_defaults(func=handle_bills_get)

    bills_create = bills_sub.add_parser("create", help="Create a bill")
    bills_create.add_argument("company_id", help="Company ID")
    bills_create.add_argument("connection_id", help="Connection ID")
    bills_create.add_argument("--supplier-id", help="Supplier ID (required unless --body is given)")
    bills_create.add_argument("--issue-date", help="Issue date YYYY-MM-DD (required unless --body is given)")
    bills_create.add_argument("--due-date", help="Due date YYYY-MM-DD (required unless --body is given)")
    bills_create.add_argument("--reference", help="Bill reference/number")
    bills_create.add_argument("--currency", default="USD", help="Currency code (default: USD)")
    bills_create.add_argument("--line-items", type=_json_argument, help="Line items as a JSON array")
    _add_push_arguments(
        bills_create,
        'Example: {"supplierRef": {"id": "..."}, "issueDate": "...", "dueDate": "...", "lineItems": [...]}',
    )
    bills_create.set_defaults(func=handle_bills_create)

    bills_payments = bills_sub.add_parser("payments", help="List bill payments")
    bills_payments.add_argument("company_id", help="Company ID")
    _add_list_arguments(bills_payments, order_by=False)
    bills_payments.set_defaults(func=handle_bills_payments)

    # Payments
    payments = subparsers.add_parser("payments", help="Customer payment operations")
    payments_sub = payments.add_subparsers(dest="action", required=True)

    payments_list = payments_sub.add_parser("list", help="List payments")
    payments_list.add_argument("company_id", help="Company ID")
    _add_list_arguments(payments_list)
    payments_list.set_defaults(func=handle_payments_list)

    payments_get = payments_sub.add_parser("get", help="Get a payment")
    payments_get.add_argument("company_id", help="Company ID")
    payments_get.add_argument("id", help="Payment ID")
    payments_get.set_defaults(func=handle_payments_get)

    payments_create = payments_sub.add_parser("create", help="Create a payment")
    payments_create.add_argument("company_id", help="Company ID")
    payments_create.add_argument("connection_id", help="Connection ID")
    payments_create.add_argument("--customer-id", help="Customer ID (required unless --body is given)")
    payments_create.add_argument("--date", help="Payment date YYYY-MM-DD (required unless --body is given)")
    payments_create.add_argument("--amount", type=float, help="Payment amount (required unless --body is given)")
    payments_create.add_argument("--currency", default="USD", help="Currency code (default: USD)")
    payments_create.add_argument("--payment-method-id", help="Payment method ID")
    payments_create.add_argument("--account-id", help="Bank account ID")
    payments_create.add_argument("--reference", help="Payment reference")
    _add_push_arguments(
        payments_create,
        'Example: {"customerRef": {"id": "..."}, "totalAmount": 100, "date": "..."}',
    )
    payments_create.set_defaults(func=handle_payments_create)

    payments_methods = payments_sub.add_parser("methods", help="List payment methods")
    payments_methods.add_argument("company_id", help="Company ID")
    _add_list_arguments(payments_methods, order_by=False)
    payments_methods.set_defaults(func=handle_payments_methods)

    # Journals
    journals = subparsers.add_parser("journals", help="Journal operations")
    journals_sub = journals.add_subparsers(dest="action", required=True)

    journals_list = journals_sub.add_parser("list", help="List journals")
    journals_list.add_argument("company_id", help="Company ID")
    _add_list_arguments(journals_list, order_by=False)
    journals_list.set_defaults(func=handle_journals_list)

    journals_get = journals_sub.add_parser("get", help="Get a journal")
    journals_get.add_argument("company_id", help="Company ID")
    journals_get.add_argument("id", help="Journal ID")
    journals_get.set_defaults(func=handle_journals_get)

    journals_entries = journals_sub.add_parser("entries", help="List journal entries")
    journals_entries.add_argument("company_id", help="Company ID")
    _add_list_arguments(journals_entries, order_by=False)
    journals_entries.set_defaults(func=handle_journals_entries)

    journals_entry = journals_sub.add_parser("entry", help="Get a journal entry")
    journals_entry.add_argument("company_id", help="Company ID")
    journals_entry.add_argument("id", help="Journal entry ID")
    journals_entry.set_defaults(func=handle_journals_entry)

    journals_create = journals_sub.add_parser("create-entry", help="Create a journal entry")
    journals_create.add_argument("company_id", help="Company ID")
    journals_create.add_argument("connection_id", help="Connection ID")
    journals_create.add_argument("--journal-id", help="Journal ID (required unless --body is given)")
    journals_create.add_argument("--posted-on", help="Posted date YYYY-MM-DD (required unless --body is given)")
    journals_create.add_argument(
        "--lines",
        type=_json_argument,
        help='Entry lines as a JSON array, e.g. [{"accountRef": {"id": "..."}, "netAmount": 100}]',
    )
    journals_create.add_argument("--description", help="Entry description")
    _add_push_arguments(
        journals_create,
        'Example: {"journalRef": {"id": "..."}, "postedOn": "...", "journalLines": [...]}',
    )
    journals_create.set_defaults(func=handle_journals_create_entry)

    # Bank accounts
    bank_accounts = subparsers.add_parser("bank-accounts", help="Bank account operations")
    bank_accounts_sub = bank_accounts.add_subparsers(dest="action", required=True)

    bank_accounts_list = bank_accounts_sub.add_parser("list", help="List bank accounts")
    bank_accounts_list.add_argument("company_id", help="Company ID")
    _add_list_arguments(bank_accounts_list, order_by=False)
    bank_accounts_list.set_defaults(func=handle_bank_accounts_list)

    bank_accounts_get = bank_accounts_sub.add_parser("get", help="Get a bank account")
    bank_accounts_get.add_argument("company_id", help="Company ID")
    bank_accounts_get.add_argument("id", help="Bank account ID")
    bank_accounts_get.set_defaults(func=handle_bank_accounts_get)

    bank_accounts_create = bank_accounts_sub.add_parser("create", help="Create a bank account")
    bank_accounts_create.add_argument("company_id", help="Company ID")
    bank_accounts_create.add_argument("connection_id", help="Connection ID")
    bank_accounts_create.add_argument("-n", "--name", help="Account name (required unless --body is given)")
    bank_accounts_create.add_argument("--account-number", help="Account number")
    bank_accounts_create.add_argument("--sort-code", help="Sort code")
    bank_accounts_create.add_argument("--currency", default="USD", help="Currency code (default: USD)")
    bank_accounts_create.add_argument("--account-type", help="Account type")
    _add_push_arguments(
        bank_accounts_create,
        'Example: {"accountName": "...", "accountNumber": "...", "currency": "USD"}',
    )
    bank_accounts_create.set_defaults(func=handle_bank_accounts_create)

    bank_accounts_txns = bank_accounts_sub.add_parser("transactions", help="List bank account transactions")
    bank_accounts_txns.add_argument("company_id", help="Company ID")
    bank_accounts_txns.add_argument("connection_id", help="Connection ID")
    bank_accounts_txns.add_argument("id", help="Bank account ID")
    _add_list_arguments(bank_accounts_txns, order_by=False)
    bank_accounts_txns.set_defaults(func=handle_bank_accounts_transactions)

    # Tax rates
    tax_rates = subparsers.add_parser("tax-rates", help="Tax rate operations")
    tax_rates_sub = tax_rates.add_subparsers(dest="action", required=True)

    tax_rates_list = tax_rates_sub.add_parser("list", help="List tax rates")
    tax_rates_list.add_argument("company_id", help="Company ID")
    _add_list_arguments(tax_rates_list, order_by=False)
    tax_rates_list.set_defaults(func=handle_tax_rates_list)

    tax_rates_get = tax_rates_sub.add_parser("get", help="Get a tax rate")
    tax_rates_get.add_argument("company_id", help="Company ID")
    tax_rates_get.add_argument("id", help="Tax rate ID")
    tax_rates_get.set_defaults(func=handle_tax_rates_get)

    # Reports
    reports = subparsers.add_parser("reports", help="Financial reports")
    reports_sub = reports.add_subparsers(dest="action", required=True)

    reports_bs = reports_sub.add_parser("balance-sheet", help="Balance sheet")
    _add_financial_arguments(reports_bs)
    reports_bs.set_defaults(func=handle_reports_balance_sheet)

    reports_pl = reports_sub.add_parser("profit-loss", help="Profit and loss")
    _add_financial_arguments(reports_pl)
    reports_pl.set_defaults(func=handle_reports_profit_loss)

    reports_cf = reports_sub.add_parser("cash-flow", help="Cash flow statement")
    _add_financial_arguments(reports_cf)
    reports_cf.set_defaults(func=handle_reports_cash_flow)

    reports_ar = reports_sub.add_parser("aged-debtors", help="Aged debtors (accounts receivable)")
    _add_aged_arguments(reports_ar)
    reports_ar.set_defaults(func=handle_reports_aged_debtors)

    reports_ap = reports_sub.add_parser("aged-creditors", help="Aged creditors (accounts payable)")
    _add_aged_arguments(reports_ap)
    reports_ap.set_defaults(func=handle_reports_aged_creditors)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    config_file = Path(args.config_file).expanduser()
    try:
        try:
            config = load_config(
                config_file,
                base_url=args.base_url,
                debug=args.debug,
                request_timeout=args.timeout,
            )
        except ConfigError as exc:
            if not getattr(args, "ignore_config_errors", False):
                raise
            logger.warning("Ignoring unreadable config: %s", exc)
            config = AppConfig(config_file=config_file, debug=args.debug, request_timeout=args.timeout)
        args.func(args, config)
    except ClientError as exc:
        raise SystemExit(describe_error(exc)) from exc
    except CliError as exc:
        raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
    main()
