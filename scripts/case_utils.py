"""Case discovery and artifact helpers for the query scripts."""

import json
from glob import glob
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

GLOB_CHARS = ("*", "?", "[", "]")

Case = Tuple[Path, Dict[str, Any]]


def load_case(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        case = json.load(f)
    if not isinstance(case, dict) or not case.get("query"):
        raise ValueError(f"Case {path} has no 'query'")
    return case


def _load_all(paths: Iterable[Path]) -> List[Case]:
    cases = []
    for path in paths:
        try:
            cases.append((path, load_case(path)))
        except (json.JSONDecodeError, OSError, ValueError) as e:
            print(f"Warning: Skipping {path}: {e}")
    return cases


def resolve_cases(case_pattern: str) -> List[Case]:
    """
    Resolve a case argument to (path, case) pairs sorted by path.

    Accepts a single JSON file, a directory (every *.json directly inside it)
    or a glob such as scripts/cases/**/*.json.
    """
    if any(c in case_pattern for c in GLOB_CHARS):
        paths = [Path(m) for m in sorted(glob(case_pattern, recursive=True))]
        paths = [p for p in paths if p.is_file() and p.suffix == ".json"]
    else:
        target = Path(case_pattern)
        if not target.exists():
            raise FileNotFoundError(f"Case file not found: {case_pattern}")
        if target.is_dir():
            paths = sorted(target.glob("*.json"))
        else:
            # a single explicit file must load, so errors propagate
            return [(target, load_case(target))]

    cases = _load_all(paths)
    if not cases:
        raise FileNotFoundError(f"No valid query cases found for: {case_pattern}")
    return cases


def get_case_id(case_path: Path, case_data: Dict[str, Any]) -> str:
    return case_data.get("case_id", case_path.stem)


def json_default(o: Any):
    # Pydantic v2 models (QueryResponse, Source, ...)
    dump = getattr(o, "model_dump", None)
    if callable(dump):
        return dump(mode="json", by_alias=True)
    return str(o)


def write_artifact(base_dir: Path, run_id: str, case_id: str, name: str, payload: Any) -> Path:
    out_dir = base_dir / run_id / case_id
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / f"{name}.json"
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False, default=json_default)
    return out_path
