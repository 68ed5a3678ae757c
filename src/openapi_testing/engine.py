"""Conformance checks of canonical HTTP messages against an OpenAPI document.

The engine routes a message to its operation, then checks parameters,
bodies and headers with JSON Schema (Draft 2020-12). Schemas of OpenAPI 3.0
documents are first normalised to JSON Schema. Local ``$ref`` pointers to
``#/components/...`` resolve because every validated schema carries the
document's ``components`` at its root.

Only JSON bodies are validated; other media types are checked for a
declared content type and otherwise accepted.
"""
from __future__ import annotations

import datetime
import hashlib
import json
import logging
import re
from dataclasses import dataclass
from http.cookies import CookieError, SimpleCookie
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import unquote, urlsplit

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError, UnknownType
from referencing.exceptions import Unresolvable

from openapi_testing.adapters.cache import CacheStore
from openapi_testing.models import (
    CanonicalRequest,
    CanonicalResponse,
    DefinitionLoadError,
    Violation,
)

logger = logging.getLogger("openapi_testing.engine")

CACHE_KEY_PREFIX = "openapi_testing.compiled."

_PARAM_RE = re.compile(r"\{([^}/]+)\}")
_INTEGER_RE = re.compile(r"^-?\d+$")
_NUMBER_RE = re.compile(r"^-?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

Document = Dict[str, Any]


def document_digest(document: Mapping[str, Any]) -> str:
    """Stable SHA-256 digest of a parsed document."""
    payload = json.dumps(document, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------


def normalize_document(document: Mapping[str, Any]) -> Document:
    """Return a JSON-compatible copy of *document* with JSON Schema keywords.

    Mapping keys become strings (YAML reads ``200:`` as an integer) and dates
    become ISO strings. For OpenAPI 3.0 documents, ``nullable`` and boolean
    ``exclusiveMinimum``/``exclusiveMaximum`` are rewritten to their JSON
    Schema 2020-12 equivalents.
    """
    legacy = str(document.get("openapi", "")).startswith("3.0")
    result: Document = _normalize(document, legacy)
    return result


def _normalize(node: Any, legacy: bool) -> Any:
    if isinstance(node, Mapping):
        out = {str(key): _normalize(value, legacy) for key, value in node.items()}
        return _upgrade_keywords(out) if legacy else out
    if isinstance(node, list):
        return [_normalize(item, legacy) for item in node]
    if isinstance(node, (datetime.date, datetime.datetime)):
        return node.isoformat()
    return node


def _upgrade_keywords(schema: Dict[str, Any]) -> Dict[str, Any]:
    for bound, limit in (("exclusiveMinimum", "minimum"), ("exclusiveMaximum", "maximum")):
        flag = schema.get(bound)
        if isinstance(flag, bool):
            del schema[bound]
            if flag and limit in schema:
                schema[bound] = schema.pop(limit)

    if schema.get("nullable") is not True:
        return schema
    del schema["nullable"]
    if isinstance(schema.get("enum"), list) and None not in schema["enum"]:
        schema["enum"] = schema["enum"] + [None]
    kind = schema.get("type")
    if isinstance(kind, str):
        schema["type"] = [kind, "null"]
        return schema
    if kind is None:
        return {"anyOf": [schema, {"type": "null"}]}
    return schema


# ---------------------------------------------------------------------------
# Routing helpers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Route:
    template: str
    pattern: re.Pattern[str]
    names: Tuple[str, ...]
    path_item: Dict[str, Any]

    def match(self, path: str) -> Optional[Dict[str, str]]:
        found = self.pattern.match(path)
        if found is None:
            return None
        return {name: unquote(value) for name, value in zip(self.names, found.groups())}


def _compile_route(template: str, path_item: Dict[str, Any]) -> _Route:
    names: List[str] = []
    regex = "^"
    position = 0
    for found in _PARAM_RE.finditer(template):
        regex += re.escape(template[position:found.start()]) + "([^/]+)"
        names.append(found.group(1))
        position = found.end()
    regex += re.escape(template[position:]) + "$"
    return _Route(template, re.compile(regex), tuple(names), path_item)


def _base_paths(document: Document) -> Tuple[str, ...]:
    bases = set()
    for server in document.get("servers") or []:
        if not isinstance(server, dict):
            continue
        path = urlsplit(str(server.get("url", ""))).path.rstrip("/")
        if path and "{" not in path:
            bases.add(path)
    return tuple(sorted(bases, key=len, reverse=True))


def _json_path(parts: Sequence[Union[str, int]]) -> str:
    return "".join(f"[{p}]" if isinstance(p, int) else f".{p}" for p in parts)


def _schema_types(schema: Mapping[str, Any]) -> List[str]:
    kind = schema.get("type")
    if isinstance(kind, str):
        return [kind]
    if isinstance(kind, list):
        return [str(k) for k in kind]
    return []


def _coerce(value: str, schema: Mapping[str, Any]) -> Any:
    """Convert a raw string parameter to the first scalar type it satisfies."""
    for kind in _schema_types(schema):
        if kind == "integer" and _INTEGER_RE.match(value):
            return int(value)
        if kind == "number" and _NUMBER_RE.match(value):
            return int(value) if _INTEGER_RE.match(value) else float(value)
        if kind == "boolean" and value.lower() in ("true", "false"):
            return value.lower() == "true"
        if kind == "string":
            return value
    return value


def _pick_media_type(
    content: Mapping[str, Any],
    content_type: Optional[str],
) -> Optional[Tuple[str, Dict[str, Any]]]:
    if content_type is None:
        for media_type, media in content.items():
            if _is_json(media_type):
                return media_type, media or {}
        media_type = next(iter(content))
        return media_type, content[media_type] or {}

    mime = content_type.split(";", 1)[0].strip().lower()
    wildcard = mime.split("/", 1)[0] + "/*"
    for candidate in (mime, wildcard, "*/*"):
        for media_type, media in content.items():
            if media_type.lower() == candidate:
                return media_type, media or {}
    return None


def _is_json(media_type: str) -> bool:
    mime = media_type.split(";", 1)[0].strip().lower()
    return mime == "application/json" or mime.endswith("+json")


def _pick_response(responses: Mapping[str, Any], status_code: int) -> Optional[Any]:
    for key in (str(status_code), f"{status_code // 100}XX", f"{status_code // 100}xx", "default"):
        if key in responses:
            return responses[key]
    return None


def _cookie(request: CanonicalRequest, name: str) -> Optional[str]:
    header = request.header("cookie")
    if header is None:
        return None
    jar: SimpleCookie = SimpleCookie()
    try:
        jar.load(header)
    except CookieError:
        return None
    morsel = jar.get(name)
    return morsel.value if morsel is not None else None


# ---------------------------------------------------------------------------
# References and schema checks
# ---------------------------------------------------------------------------


def _follow_pointer(root: Any, ref: Any) -> Any:
    """Resolve a local ``#/...`` reference against *root*."""
    if ref == "#":
        return root
    if not isinstance(ref, str) or not ref.startswith("#/"):
        raise DefinitionLoadError(f"Unsupported reference {ref!r}", source=ref)
    node: Any = root
    for raw in ref[2:].split("/"):
        part = unquote(raw).replace("~1", "/").replace("~0", "~")
        if isinstance(node, dict) and part in node:
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            raise DefinitionLoadError(f"Unresolvable reference {ref}", source=ref)
    return node


def _with_components(schema: Dict[str, Any], components: Mapping[str, Any]) -> Dict[str, Any]:
    root = dict(schema)
    if components and "components" not in root:
        root["components"] = components
    return root


_DATA_KEYWORDS = frozenset({"example", "examples", "default", "enum", "const"})


def _references(schema: Any) -> Iterator[Any]:
    if isinstance(schema, dict):
        for key, value in schema.items():
            if key == "$ref":
                yield value
            elif key not in _DATA_KEYWORDS:
                yield from _references(value)
    elif isinstance(schema, list):
        for item in schema:
            yield from _references(item)


def _declared_schemas(document: Document) -> Iterator[Tuple[str, Any]]:
    """Yield ``(location, schema)`` for every schema declared in *document*."""
    components = document.get("components") or {}
    schemas = components.get("schemas") if isinstance(components, dict) else None
    if isinstance(schemas, dict):
        for name, schema in schemas.items():
            yield f"#/components/schemas/{name}", schema

    stack: List[Tuple[str, Any]] = [("#", document)]
    while stack:
        where, node = stack.pop()
        if isinstance(node, dict):
            for key, value in node.items():
                if key == "schema":
                    yield f"{where}/schema", value
                elif key not in ("example", "examples") and not (
                    where == "#/components" and key == "schemas"
                ):
                    stack.append((f"{where}/{key}", value))
        elif isinstance(node, list):
            stack.extend((f"{where}/{index}", item) for index, item in enumerate(node))


def check_schemas(document: Document) -> None:
    """Reject a normalised document whose schemas cannot be evaluated.

    Every schema must be valid JSON Schema 2020-12 and every ``$ref`` in it
    must resolve locally.

    Raises:
        DefinitionLoadError: On the first broken schema or reference.
    """
    components = document.get("components") or {}
    for where, schema in _declared_schemas(document):
        if not isinstance(schema, dict):
            continue
        try:
            Draft202012Validator.check_schema(schema)
        except SchemaError as exc:
            raise DefinitionLoadError(
                f"Invalid schema at {where}: {exc.message}", source=where
            ) from exc
        root = _with_components(schema, components)
        for ref in _references(schema):
            try:
                _follow_pointer(root, ref)
            except DefinitionLoadError as exc:
                raise DefinitionLoadError(f"{exc} in schema at {where}", source=where) from exc


# ---------------------------------------------------------------------------
# Compiled definition
# ---------------------------------------------------------------------------


class CompiledSpec:
    """Read-only, routable view of a normalised OpenAPI document.

    Instances hold no mutable state after construction and may be shared
    between threads.
    """

    def __init__(self, document: Document) -> None:
        self._document = document
        self._components: Dict[str, Any] = document.get("components") or {}
        paths: Dict[str, Any] = document.get("paths") or {}
        routes = [
            _compile_route(template, item)
            for template, item in paths.items()
            if isinstance(item, dict)
        ]
        # literal templates win over templated ones
        self._routes: Tuple[_Route, ...] = tuple(
            sorted(routes, key=lambda r: (len(r.names), -len(r.template)))
        )
        self._bases = _base_paths(document)

    @property
    def document(self) -> Document:
        return self._document

    # -- references -------------------------------------------------------

    def _resolve(self, node: Any) -> Any:
        seen = set()
        while isinstance(node, dict) and "$ref" in node:
            ref = node["$ref"]
            if ref in seen:
                raise DefinitionLoadError(f"Circular reference {ref}", source=ref)
            seen.add(ref)
            node = _follow_pointer(self._document, ref)
        return node

    # -- routing ----------------------------------------------------------

    def _locate(self, path: str) -> Optional[Tuple[_Route, Dict[str, str]]]:
        for route in self._routes:
            if route.template == path:
                return route, {}
        candidates = [path]
        for base in self._bases:
            if path == base or path.startswith(base + "/"):
                candidates.append(path[len(base):] or "/")
        for candidate in candidates:
            for route in self._routes:
                values = route.match(candidate)
                if values is not None:
                    logger.debug("Routed %s to %s", path, route.template)
                    return route, values
        return None

    def _operation(
        self,
        location: str,
        path: str,
        method: str,
    ) -> Union[Tuple[_Route, Dict[str, str], Dict[str, Any]], Violation]:
        located = self._locate(path)
        if located is None:
            return Violation(location, "path", f"No path in the definition matches {path}")
        route, values = located
        operation = route.path_item.get(method.lower())
        if not isinstance(operation, dict):
            return Violation(
                location,
                "method",
                f"Method {method.upper()} is not defined for path {route.template}",
            )
        return route, values, operation

    # -- schema checks ----------------------------------------------------

    def _schema_violations(
        self,
        instance: Any,
        schema: Any,
        location: str,
        pointer: str,
    ) -> List[Violation]:
        if not isinstance(schema, dict):
            return []
        validator = Draft202012Validator(_with_components(schema, self._components))
        try:
            errors = sorted(
                validator.iter_errors(instance),
                key=lambda e: (_json_path(list(e.absolute_path)), e.message),
            )
        except (SchemaError, UnknownType, Unresolvable) as exc:
            raise DefinitionLoadError(
                f"Schema for {location} {pointer} cannot be evaluated: {exc}",
                source=pointer,
            ) from exc
        return [
            Violation(
                location=location,
                rule=str(error.validator),
                message=error.message,
                pointer=pointer + _json_path(list(error.absolute_path)),
            )
            for error in errors
        ]

    def _check_value(
        self,
        values: List[str],
        schema: Any,
        location: str,
        pointer: str,
    ) -> List[Violation]:
        if not isinstance(schema, dict):
            return []
        resolved = self._resolve(schema)
        instance: Any
        if "array" in _schema_types(resolved):
            items = values if len(values) > 1 else values[0].split(",")
            item_schema = self._resolve(resolved.get("items") or {})
            instance = [_coerce(item, item_schema) for item in items]
        else:
            instance = _coerce(values[0], resolved)
        return self._schema_violations(instance, schema, location, pointer)

    def _check_content(
        self,
        content: Mapping[str, Any],
        content_type: Optional[str],
        body: bytes,
        location: str,
    ) -> List[Violation]:
        media = _pick_media_type(content, content_type)
        if media is None:
            return [
                Violation(
                    location,
                    "content-type",
                    f"Content type {content_type} is not declared; "
                    f"expected one of {', '.join(content)}",
                )
            ]
        media_type, media_spec = media
        if not _is_json(content_type or media_type):
            return []
        try:
            instance = json.loads(body)
        except ValueError as exc:
            return [Violation(location, "json", f"Body is not valid JSON: {exc}")]
        return self._schema_violations(instance, media_spec.get("schema"), location, "$")

    # -- requests ---------------------------------------------------------

    def _parameters(self, path_item: Dict[str, Any], operation: Dict[str, Any]) -> List[Dict[str, Any]]:
        merged: Dict[Tuple[Any, Any], Dict[str, Any]] = {}
        for raw in list(path_item.get("parameters") or []) + list(operation.get("parameters") or []):
            param = self._resolve(raw)
            if isinstance(param, dict):
                merged[(param.get("name"), param.get("in"))] = param
        return list(merged.values())

    def _check_parameter(
        self,
        param: Dict[str, Any],
        request: CanonicalRequest,
        path_values: Dict[str, str],
    ) -> List[Violation]:
        name = str(param.get("name"))
        where = param.get("in")
        pointer = f"{where}.{name}"
        values: Optional[List[str]] = None
        if where == "path":
            if name in path_values:
                values = [path_values[name]]
        elif where == "query":
            values = request.query.get(name)
        elif where == "header":
            header = request.header(name)
            values = [header] if header is not None else None
        elif where == "cookie":
            cookie = _cookie(request, name)
            values = [cookie] if cookie is not None else None

        if not values:
            if param.get("required") or where == "path":
                return [
                    Violation(
                        "request",
                        "required",
                        f"Missing required {where} parameter {name!r}",
                        pointer,
                    )
                ]
            return []
        return self._check_value(values, param.get("schema"), "request", pointer)

    def validate_request(self, request: CanonicalRequest) -> Tuple[Violation, ...]:
        """Check a canonical request against the operation it routes to."""
        found = self._operation("request", request.path, request.method)
        if isinstance(found, Violation):
            return (found,)
        route, path_values, operation = found

        violations: List[Violation] = []
        for param in self._parameters(route.path_item, operation):
            violations.extend(self._check_parameter(param, request, path_values))

        body_spec = self._resolve(operation.get("requestBody"))
        if isinstance(body_spec, dict):
            if not request.body:
                if body_spec.get("required"):
                    violations.append(
                        Violation("request", "required", "Request body is required")
                    )
            elif body_spec.get("content"):
                violations.extend(
                    self._check_content(
                        body_spec["content"],
                        request.header("content-type"),
                        request.body,
                        "request",
                    )
                )
        return tuple(violations)

    # -- responses --------------------------------------------------------

    def validate_response(
        self,
        response: CanonicalResponse,
        path: str,
        method: str,
    ) -> Tuple[Violation, ...]:
        """Check a canonical response against the operation at *path*/*method*.

        *path* is either a concrete request path or a path template from the
        document.
        """
        found = self._operation("response", urlsplit(path).path or "/", method)
        if isinstance(found, Violation):
            return (found,)
        route, _, operation = found

        spec = self._resolve(_pick_response(operation.get("responses") or {}, response.status_code))
        if not isinstance(spec, dict):
            return (
                Violation(
                    "response",
                    "status",
                    f"Status {response.status_code} is not declared for "
                    f"{method.upper()} {route.template}",
                ),
            )

        violations: List[Violation] = []
        for name, header_spec in (spec.get("headers") or {}).items():
            if name.lower() == "content-type":
                continue
            header_spec = self._resolve(header_spec)
            if not isinstance(header_spec, dict):
                continue
            value = response.header(name)
            pointer = f"header.{name}"
            if value is None:
                if header_spec.get("required"):
                    violations.append(
                        Violation(
                            "response",
                            "required",
                            f"Missing required response header {name!r}",
                            pointer,
                        )
                    )
                continue
            violations.extend(
                self._check_value([value], header_spec.get("schema"), "response", pointer)
            )

        content = spec.get("content") or {}
        if content and not response.body:
            violations.append(
                Violation(
                    "response",
                    "body",
                    "Response body is empty but the definition declares content",
                )
            )
        elif content:
            violations.extend(
                self._check_content(
                    content, response.header("content-type"), response.body, "response"
                )
            )
        return tuple(violations)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class OpenApiEngine:
    """Engine bound to one loaded OpenAPI document.

    The document is never mutated. :meth:`compile` normalises it once per
    call, or reuses the normalised form from the attached cache store.
    """

    def __init__(self, document: Mapping[str, Any]) -> None:
        self._document = document
        self._cache_key = CACHE_KEY_PREFIX + document_digest(document)
        self._cache: Optional[CacheStore] = None
        self._ttl: Optional[int] = None

    @property
    def document(self) -> Mapping[str, Any]:
        return self._document

    @property
    def cache_key(self) -> str:
        return self._cache_key

    def set_cache(self, store: Optional[CacheStore], ttl: Optional[int] = None) -> None:
        """Attach a cache store for compiled documents, or detach with None."""
        self._cache = store
        self._ttl = ttl

    def compile(self) -> CompiledSpec:
        normalized: Optional[Document] = None
        key = self.cache_key
        if self._cache is not None and self._cache.has(key):
            normalized = self._cache.get(key)
            if normalized is not None:
                logger.info("Using cached compiled definition %s", key)
        if normalized is None:
            normalized = normalize_document(self._document)
            if self._cache is not None:
                self._cache.set(key, normalized, self._ttl)
        return CompiledSpec(normalized)


def bind_schema(document: Mapping[str, Any]) -> OpenApiEngine:
    """Bind an engine to a parsed OpenAPI document.

    Raises:
        DefinitionLoadError: If *document* carries no ``openapi`` version,
            or one of its schemas is invalid or holds an unresolvable
            ``$ref``.
    """
    if not isinstance(document, Mapping):
        raise DefinitionLoadError(
            f"Definition must be a mapping, got {type(document).__name__}"
        )
    if "openapi" not in document:
        raise DefinitionLoadError(
            "Definition is not an OpenAPI document: missing 'openapi' field"
        )
    check_schemas(normalize_document(document))
    return OpenApiEngine(document)
