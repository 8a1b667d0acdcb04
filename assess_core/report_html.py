from __future__ import annotations
from html import escape
from pathlib import Path
from typing import Dict, Any, List, Mapping, Optional

_DIM_LABELS = {
    "EI": ("Extraversion", "Introversion"),
    "SN": ("Sensing", "Intuition"),
    "TF": ("Thinking", "Feeling"),
    "JP": ("Judging", "Perceiving"),
}

_STYLE = """
 body{font-family:system-ui,-apple-system,Segoe UI,Roboto,Ubuntu,'Helvetica Neue',Arial}
 .wrap{max-width:960px;margin:40px auto;padding:0 16px}
 h1{margin:0 0 16px}
 .headline{font-size:1.1rem;margin:8px 0 16px}
 .bar{background:#eee;border-radius:4px;height:10px}
 .bar span{display:block;background:#3b82f6;height:10px;border-radius:4px}
 table{border-collapse:collapse;width:100%}
 th,td{text-align:left}
 .cert{border:6px double #1e3a8a;padding:48px;text-align:center;max-width:760px;margin:40px auto}
 .cert h1{font-size:2rem}
 .muted{color:#666}
"""


def _page(title: str, body: str) -> str:
    return f"""<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8"/>
<title>{escape(title)}</title>
<style>{_STYLE}</style>
</head>
<body>
{body}
</body>
</html>
"""


def _list(title: str, items: List[Any]) -> str:
    if not items:
        return ""
    lis = "".join(f"<li>{escape(str(i))}</li>" for i in items)
    return f"<h3>{escape(title)}</h3><ul>{lis}</ul>"


def _bar(pct: Any) -> str:
    try:
        val = max(0, min(100, int(pct)))
    except (TypeError, ValueError):
        val = 0
    return f"<div class=\"bar\"><span style=\"width:{val}%\"></span></div>"


def _mbti_body(res: Mapping[str, Any]) -> str:
    rows: List[str] = []
    for dim, d in (res.get("dimensions") or {}).items():
        labels = _DIM_LABELS.get(dim, (dim[:1], dim[1:]))
        letter = str(d.get("letter", ""))
        pole = labels[0] if letter == dim[:1] else labels[1]
        rows.append(
            f"<tr><td>{escape(dim)}</td><td>{escape(letter)} ({escape(pole)})</td>"
            f"<td>{int(d.get('score', 0))}%{_bar(d.get('score', 0))}</td>"
            f"<td>{escape(str(d.get('description', '')))}</td></tr>"
        )
    return (
        f"<div class=\"headline\"><b>{escape(str(res.get('type', '')))}</b> "
        f"&middot; {escape(str(res.get('name', '')))}</div>"
        f"<p>{escape(str(res.get('description', '')))}</p>"
        "<table border='1' cellpadding='6' cellspacing='0'>"
        "<thead><tr><th>Dimension</th><th>Preference</th><th>Confidence</th><th>Meaning</th></tr></thead>"
        f"<tbody>{''.join(rows)}</tbody></table>"
        + _list("Strengths", list(res.get("strengths") or []))
        + _list("Development areas", list(res.get("development_areas") or []))
        + _list("Career suggestions", list(res.get("career_suggestions") or []))
    )


def _tki_body(res: Mapping[str, Any]) -> str:
    scores: Dict[str, Any] = res.get("scores") or {}
    primary = res.get("mode")
    rows = "".join(
        f"<tr><td>{'<b>' if mode == primary else ''}{escape(mode.capitalize())}{'</b>' if mode == primary else ''}</td>"
        f"<td>{int(pct)}%{_bar(pct)}</td></tr>"
        for mode, pct in scores.items()
    )
    return (
        f"<div class=\"headline\"><b>{escape(str(res.get('style', '')))}</b></div>"
        f"<p>{escape(str(res.get('description', '')))}</p>"
        "<table border='1' cellpadding='6' cellspacing='0'>"
        "<thead><tr><th>Mode</th><th>Share</th></tr></thead>"
        f"<tbody>{rows}</tbody></table>"
        + _list("Insights", list(res.get("insights") or []))
        + _list("Communication tips", list(res.get("communication_tips") or []))
        + _list("Growth areas", list(res.get("growth_areas") or []))
    )


def render_assessment_report(report: Mapping[str, Any]) -> str:
    """HTML page for one stored assessment row (``result`` holds the score dict)."""
    res: Mapping[str, Any] = report.get("result") or {}
    kind = str(report.get("assessment_type") or res.get("kind") or "").lower()
    if kind == "mbti":
        title, body = "MBTI Personality Report", _mbti_body(res)
    elif kind == "tki":
        title, body = "TKI Conflict Style Report", _tki_body(res)
    else:
        raise ValueError(f"unknown assessment kind: {kind}")
    done = report.get("completed_at")
    meta = f"<p class=\"muted\">Completed {escape(str(done))}</p>" if done else ""
    return _page(title, f"<div class=\"wrap\"><h1>{title}</h1>{meta}{body}</div>")


def render_certificate(
    cert: Mapping[str, Any],
    course: Optional[Mapping[str, Any]],
    user_name: Optional[str] = None,
) -> str:
    course_title = str((course or {}).get("title") or cert.get("course_id") or "")
    who = user_name or "Learner"
    issued = str(cert.get("issued_at") or "")[:10]
    body = (
        "<div class=\"cert\">"
        "<p class=\"muted\">Certificate of Completion</p>"
        f"<h1>{escape(who)}</h1>"
        "<p>has successfully completed</p>"
        f"<h2>{escape(course_title)}</h2>"
        f"<p class=\"muted\">Issued {escape(issued)} &middot; ID {escape(str(cert.get('id', '')))}</p>"
        "</div>"
    )
    return _page(f"Certificate - {course_title}", body)


def export_report_html(report: Mapping[str, Any], path: str) -> None:
    Path(path).write_text(render_assessment_report(report), encoding="utf-8")
