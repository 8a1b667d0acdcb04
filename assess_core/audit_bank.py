from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Iterable

from . import config
from .question_bank import KINDS, MBTI_DIMENSIONS, TKI_MODES, load_bank
from .types import QuestionBank


def _valid_tags(bank: QuestionBank, dimension: str) -> tuple[str, ...]:
    if bank.kind == "mbti":
        return (dimension[0], dimension[1]) if dimension in MBTI_DIMENSIONS else ()
    return TKI_MODES


def _blank_coverage(bank: QuestionBank) -> dict[str, dict[str, int]]:
    if bank.kind == "mbti":
        return {dim: {"questions": 0, dim[0]: 0, dim[1]: 0} for dim in MBTI_DIMENSIONS}
    return {"conflict": {"questions": 0, **{mode: 0 for mode in TKI_MODES}}}


def audit_bank(bank: QuestionBank) -> dict[str, object]:
    coverage = _blank_coverage(bank)
    warnings: list[str] = []

    id_counts = Counter(q.id for q in bank.questions)
    duplicates = sorted(qid for qid, n in id_counts.items() if n > 1)
    for qid in duplicates:
        warnings.append(f"question id {qid} appears {id_counts[qid]} times")

    unknown_tags: list[dict[str, object]] = []
    few_options: list[int] = []
    for q in bank.questions:
        valid = _valid_tags(bank, q.dimension)
        if not valid:
            warnings.append(f"question {q.id} has unknown dimension {q.dimension!r}")
            continue
        data = coverage.setdefault(q.dimension, {"questions": 0})
        data["questions"] += 1
        if len(q.options) < config.BANK_MIN_OPTIONS:
            few_options.append(q.id)
            warnings.append(f"question {q.id} has {len(q.options)} option(s) (<{config.BANK_MIN_OPTIONS})")
        for opt in q.options:
            if opt.tag not in valid:
                unknown_tags.append({"question": q.id, "tag": opt.tag})
                warnings.append(f"question {q.id} option {opt.text!r} has tag {opt.tag!r} outside {'/'.join(valid)}")
                continue
            data[opt.tag] = data.get(opt.tag, 0) + 1

    for dim, data in coverage.items():
        if data["questions"] < config.BANK_MIN_PER_DIMENSION:
            warnings.append(f"{dim} has {data['questions']} question(s) (<{config.BANK_MIN_PER_DIMENSION})")

    if bank.kind == "mbti":
        sizes = {dim: coverage[dim]["questions"] for dim in MBTI_DIMENSIONS}
        if len(set(sizes.values())) > 1:
            warnings.append("dimension imbalance: " + ", ".join(f"{d}={n}" for d, n in sizes.items()))

    return {
        "kind": bank.kind,
        "version": bank.version,
        "total": len(bank.questions),
        "coverage": coverage,
        "duplicate_ids": duplicates,
        "unknown_tags": unknown_tags,
        "few_options": few_options,
        "warnings": warnings,
    }


def _format_row(label: str, data: dict[str, int]) -> str:
    parts = [f"{label:<8}"]
    for key, val in data.items():
        parts.append(f"{key}:{val:3d}")
    return "  ".join(parts)


def print_report(summary: dict[str, object]) -> None:
    print(f"=== {str(summary['kind']).upper()} bank v{summary['version']} ({summary['total']} questions) ===")
    coverage: dict[str, dict[str, int]] = summary["coverage"]  # type: ignore[assignment]
    for dim in coverage:
        print("  " + _format_row(dim, coverage[dim]))

    warnings: list[str] = summary["warnings"]  # type: ignore[assignment]
    if warnings:
        print("\nWarnings:")
        for msg in warnings:
            print(f" - {msg}")
    else:
        print("\nNo warnings.")


def write_summary(summaries: Iterable[dict[str, object]], path: Path) -> str:
    text = json.dumps(list(summaries), indent=2, sort_keys=True)
    path.write_text(text + "\n", encoding="utf-8")
    return text


def main(argv: list[str] | None = None) -> int:
    kinds = [k for k in (argv or []) if k in KINDS] or list(KINDS)
    summaries = []
    for kind in kinds:
        summary = audit_bank(load_bank(kind))
        print_report(summary)
        print()
        summaries.append(summary)
    out = next((a for a in argv or [] if a.endswith(".json")), None)
    if out:
        write_summary(summaries, Path(out))
    return 2 if any(s["warnings"] for s in summaries) else 0


if __name__ == "__main__":
    import sys
    raise SystemExit(main(sys.argv[1:]))
