import dataclasses
import json
import re
import types
import typing
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import urljoin

from .errors import DeserializationError


_LINK_RE = re.compile(r"<([^>]*)>\s*((?:;\s*[^;,]+)*)")
_PARAM_RE = re.compile(r';\s*([^=;,\s]+)\s*=\s*"?([^";,]*)"?')


class LinkHeader:
    @staticmethod
    def parse(value: Optional[str]) -> Dict[str, str]:
        links: Dict[str, str] = {}
        if not value:
            return links
        for match in _LINK_RE.finditer(value):
            target, params = match.group(1), match.group(2)
            for name, param in _PARAM_RE.findall(params):
                if name.lower() != "rel":
                    continue
                for rel in param.split():
                    links.setdefault(rel.lower(), target.strip())
        return links

    @staticmethod
    def next_url(value: Optional[str], base_url: str = "") -> Optional[str]:
        target = LinkHeader.parse(value).get("next")
        if not target:
            return None
        return urljoin(base_url, target) if base_url else target


def _is_optional(tp: Any) -> bool:
    return typing.get_origin(tp) in (Union, types.UnionType) and type(None) in typing.get_args(tp)


class JsonResponseParser:
    """Turns JSON bytes into plain values, dataclasses or ``from_dict`` types."""

    def loads(self, data: bytes, schema: Any = None) -> Any:
        try:
            return json.loads(data)
        except ValueError as exc:
            raise DeserializationError(f"malformed JSON ({exc})", data, schema) from exc

    def parse(self, data: bytes, schema: Any = None) -> Any:
        return self.parse_value(self.loads(data, schema), schema, data)

    def parse_value(self, value: Any, schema: Any = None, data: Optional[bytes] = None) -> Any:
        try:
            return self.convert(value, schema)
        except (TypeError, ValueError, KeyError) as exc:
            raise DeserializationError(f"cannot convert to {_schema_name(schema)} ({exc})", data, schema) from exc

    def parse_into(self, data: bytes, existing: Any) -> Any:
        payload = self.loads(data, type(existing))
        if not isinstance(payload, dict):
            raise DeserializationError(
                f"expected a JSON object to merge into {type(existing).__name__}", data, type(existing)
            )
        try:
            return self.merge(existing, payload)
        except (TypeError, ValueError, KeyError) as exc:
            raise DeserializationError(f"cannot merge into {type(existing).__name__} ({exc})", data) from exc

    def convert(self, value: Any, schema: Any) -> Any:
        if schema is None or schema is Any:
            return value
        if _is_optional(schema):
            if value is None:
                return None
            inner = [a for a in typing.get_args(schema) if a is not type(None)]
            return self.convert(value, inner[0] if len(inner) == 1 else Any)
        origin = typing.get_origin(schema)
        if origin in (list, List):
            if not isinstance(value, list):
                raise TypeError(f"expected a JSON array, got {type(value).__name__}")
            args = typing.get_args(schema)
            item_schema = args[0] if args else Any
            return [self.convert(v, item_schema) for v in value]
        if origin in (dict, Dict):
            if not isinstance(value, dict):
                raise TypeError(f"expected a JSON object, got {type(value).__name__}")
            args = typing.get_args(schema)
            value_schema = args[1] if len(args) == 2 else Any
            return {k: self.convert(v, value_schema) for k, v in value.items()}
        if dataclasses.is_dataclass(schema) and isinstance(schema, type):
            return self._build_dataclass(value, schema)
        if hasattr(schema, "from_dict"):
            if not isinstance(value, dict):
                raise TypeError(f"expected a JSON object, got {type(value).__name__}")
            return schema.from_dict(value)
        if schema is float and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        if schema is int and isinstance(value, bool):
            raise TypeError("expected int, got bool")
        if isinstance(schema, type):
            if not isinstance(value, schema):
                raise TypeError(f"expected {schema.__name__}, got {type(value).__name__}")
            return value
        return value

    def _build_dataclass(self, value: Any, schema: type) -> Any:
        if not isinstance(value, dict):
            raise TypeError(f"expected a JSON object, got {type(value).__name__}")
        hints = typing.get_type_hints(schema)
        kwargs = {}
        for f in dataclasses.fields(schema):
            if not f.init or f.name not in value:
                continue
            kwargs[f.name] = self.convert(value[f.name], hints.get(f.name, Any))
        return schema(**kwargs)

    def merge(self, existing: Any, payload: Dict[str, Any]) -> Any:
        # every value is converted before anything is assigned
        for target, key, value in self._merge_plan(existing, payload):
            if isinstance(target, dict):
                target[key] = value
            else:
                setattr(target, key, value)
        return existing

    def _merge_plan(self, existing: Any, payload: Dict[str, Any]) -> List[Tuple[Any, str, Any]]:
        if isinstance(existing, dict):
            return [(existing, key, value) for key, value in payload.items()]
        hints: Dict[str, Any] = {}
        if dataclasses.is_dataclass(existing):
            hints = typing.get_type_hints(type(existing))
            names = {f.name for f in dataclasses.fields(existing)}
        else:
            names = set(payload)
        plan: List[Tuple[Any, str, Any]] = []
        for key, value in payload.items():
            if key not in names:
                continue
            current = getattr(existing, key, None)
            if isinstance(value, dict) and current is not None and (
                dataclasses.is_dataclass(current) or isinstance(current, dict)
            ):
                plan.extend(self._merge_plan(current, value))
            else:
                plan.append((existing, key, self.convert(value, hints.get(key, Any))))
        return plan


def _schema_name(schema: Any) -> str:
    return getattr(schema, "__name__", None) or repr(schema)
