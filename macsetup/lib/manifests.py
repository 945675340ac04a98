from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from ..errors import ManifestError
from ..models import Dependency, EnvironmentSpec, PackageKind, PackageSpec

logger = logging.getLogger(__name__)

# config.yml section -> package kind
SECTION_KINDS: Dict[str, PackageKind] = {
    "taps": PackageKind.TAP,
    "tools": PackageKind.FORMULA,
    "apps": PackageKind.CASK,
    "fonts": PackageKind.FONT,
}

_BREWFILE_KINDS = {"tap": "taps", "brew": "tools", "cask": "apps"}
_BREWFILE_IGNORED = {"mas", "vscode", "whalebrew", "cargo", "go", "uv"}

_DIRECTIVE_RE = re.compile(r"""^(\w+)\s+(?:"([^"]+)"|'([^']+)')\s*(.*)$""")
_CASK_ARGS_RE = re.compile(r"^cask_args\s+(.*)$")
_KV_RE = re.compile(r"""(\w+):\s*("[^"]*"|'[^']*'|\{[^}]*\}|\[[^\]]*\]|[^\s,{}\[\]]+)""")
_LIST_ITEM_RE = re.compile(r""""([^"]*)"|'([^']*)'|:?([\w][\w\-]*)""")
_DEP_NAME_RE = re.compile(r"^[A-Za-z0-9_.\-]+")


def _yaml():
    try:
        import yaml  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError("PyYAML required to load manifests") from e
    return yaml


def load_yaml_mapping(path: str) -> Dict[str, Any]:
    p = Path(path)
    yaml = _yaml()
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ManifestError(f"Invalid YAML in {p}: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError(f"Manifest must be a mapping/dict: {p}")
    return data


def _coerce_option(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def coerce_options(raw: Any, *, where: str) -> Dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ManifestError(f"{where}: options must be a mapping")
    return {str(k): _coerce_option(v) for k, v in raw.items() if v is not None}


def parse_entry(entry: Any, kind: PackageKind, *, where: str = "manifest") -> PackageSpec:
    """Turn one manifest entry (a bare name or a mapping) into a PackageSpec.

    Mapping entries take their options from an ``options`` mapping, and any
    other key besides ``name`` is treated as an option too::

        - name: visual-studio-code
          appdir: ~/Applications
    """

    if isinstance(entry, str):
        name = entry.strip()
        options: Dict[str, str] = {}
    elif isinstance(entry, Mapping):
        name = str(entry.get("name") or "").strip()
        options = coerce_options(entry.get("options"), where=where)
        extra = {k: v for k, v in entry.items() if k not in {"name", "options"}}
        options.update(coerce_options(extra, where=where))
    else:
        raise ManifestError(f"{where}: unsupported entry {entry!r}")

    if not name:
        raise ManifestError(f"{where}: entry without a name: {entry!r}")
    return PackageSpec(name=name, kind=kind, options=options)


def dedupe_specs(specs: Iterable[PackageSpec]) -> List[PackageSpec]:
    seen: set = set()
    out: List[PackageSpec] = []
    for s in specs:
        if s.key in seen:
            logger.warning("Duplicate %s entry %s ignored", s.kind.value, s.name)
            continue
        seen.add(s.key)
        out.append(s)
    return out


def specs_from_mapping(raw: Mapping[str, Any]) -> List[PackageSpec]:
    """Collect PackageSpecs from the taps/tools/apps/fonts sections, in that order."""

    specs: List[PackageSpec] = []
    for section, kind in SECTION_KINDS.items():
        entries = raw.get(section) or []
        if not isinstance(entries, list):
            raise ManifestError(f"'{section}' must be a list")
        for entry in entries:
            specs.append(parse_entry(entry, kind, where=section))
    return dedupe_specs(specs)


def _strip_comment(line: str) -> str:
    quote = None
    for i, ch in enumerate(line):
        if quote:
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == "#":
            return line[:i]
    return line


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _list_items(value: str) -> List[str]:
    items = []
    for m in _LIST_ITEM_RE.finditer(value):
        item = m.group(1) or m.group(2) or m.group(3)
        if item:
            items.append(item)
    return items


def _parse_brewfile_options(text: str) -> Dict[str, str]:
    opts: Dict[str, str] = {}
    for m in _KV_RE.finditer(text):
        key, value = m.group(1), m.group(2)
        if value.startswith("{"):
            opts.update(_parse_brewfile_options(value[1:-1]))
        elif value.startswith("["):
            items = _list_items(value[1:-1])
            if key == "args":
                # args: ["HEAD", "with-foo"] -> bare flags
                opts.update({item: "true" for item in items})
            else:
                opts[key] = ",".join(items)
        else:
            opts[key] = _unquote(value)
    return opts


def brewfile_to_mapping(text: str) -> Dict[str, Any]:
    """Translate Brewfile directives into the config.yml section layout.

    A global ``cask_args`` line ends up under ``cask_args`` and is applied to
    every cask on top of ``cask_defaults``.
    """

    raw: Dict[str, Any] = {section: [] for section in SECTION_KINDS}
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = _strip_comment(line).strip()
        if not line:
            continue

        m = _CASK_ARGS_RE.match(line)
        if m:
            raw.setdefault("cask_args", {}).update(_parse_brewfile_options(m.group(1)))
            continue

        m = _DIRECTIVE_RE.match(line)
        if not m:
            raise ManifestError(f"Brewfile line {lineno}: cannot parse {line!r}")
        directive, name, rest = m.group(1), m.group(2) or m.group(3), m.group(4).strip()

        if directive in _BREWFILE_IGNORED:
            logger.warning("Brewfile line %d: '%s' entries are not supported, ignoring %s", lineno, directive, name)
            continue
        section = _BREWFILE_KINDS.get(directive)
        if section is None:
            raise ManifestError(f"Brewfile line {lineno}: unknown directive {directive!r}")

        rest = rest.lstrip(",").strip()
        options: Dict[str, str] = {}
        if directive == "tap" and rest[:1] in ('"', "'"):
            url, _, rest = rest[1:].partition(rest[0])
            options["url"] = url
            rest = rest.lstrip(",").strip()
        options.update(_parse_brewfile_options(rest))

        if section == "apps" and name.startswith("font-"):
            section = "fonts"
        raw[section].append({"name": name, "options": options})
    return raw


def is_brewfile(path: str) -> bool:
    return Path(path).name.lower().startswith("brewfile")


def load_package_mapping(path: str) -> Dict[str, Any]:
    """Load a package manifest (config.yml or Brewfile) into a raw mapping."""

    p = Path(path)
    if is_brewfile(path):
        return brewfile_to_mapping(p.read_text(encoding="utf-8"))
    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ManifestError(f"Package manifest must be YAML or a Brewfile: {p}")
    return load_yaml_mapping(path)


def _dependency_name(spec: str) -> str:
    # conda-forge::numpy>=1.26 -> numpy
    bare = spec.split("::", 1)[-1].strip()
    m = _DEP_NAME_RE.match(bare)
    if not m:
        raise ManifestError(f"Cannot parse dependency {spec!r}")
    return m.group(0)


def _parse_dependencies(raw: Any, *, where: str) -> List[Dependency]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ManifestError(f"{where}: dependencies must be a list")

    deps: List[Dependency] = []
    for item in raw:
        if isinstance(item, str):
            deps.append(Dependency(name=_dependency_name(item), spec=item.strip()))
        elif isinstance(item, Mapping) and "pip" in item:
            pip_items = item["pip"] or []
            if not isinstance(pip_items, list):
                raise ManifestError(f"{where}: pip dependencies must be a list")
            for pip_item in pip_items:
                pip_spec = str(pip_item).strip()
                deps.append(Dependency(name=_dependency_name(pip_spec), spec=pip_spec, source="pip"))
        else:
            raise ManifestError(f"{where}: unsupported dependency {item!r}")
    return deps


def load_environment(path: str) -> EnvironmentSpec:
    p = Path(path)
    if not p.exists():
        raise ManifestError(f"Environment file not found: {p}")

    raw = load_yaml_mapping(path)
    name = raw.get("name")
    channels = raw.get("channels") or []
    if not isinstance(channels, list):
        raise ManifestError(f"{p}: channels must be a list")

    return EnvironmentSpec(
        name=str(name).strip() if name is not None else None,
        dependencies=_parse_dependencies(raw.get("dependencies"), where=str(p)),
        channels=[str(c) for c in channels],
        path=str(p),
    )
