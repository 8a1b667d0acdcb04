from __future__ import annotations
import os, sys, datetime
from assess_core.question_bank import KINDS, load_bank
from assess_core.scoring import score
from assess_core.errors import AssessmentError
from assess_core.report_html import export_report_html
def ask(prompt: str, options) -> int:
    print(prompt)
    for i,opt in enumerate(options): print(f"  [{i}] {opt}")
    while True:
        v = input("Your choice (index): ").strip()
        if v.isdigit() and int(v) < len(options): return int(v)
        print(f"Enter a number between 0 and {len(options)-1}.")
def choose_kind(argv) -> str:
    if argv and argv[0].lower() in KINDS: return argv[0].lower()
    print("Choose assessment: [0] MBTI personality  [1] TKI conflict style")
    return "tki" if input("Your choice: ").strip() == "1" else "mbti"
def main(argv=None):
    kind = choose_kind(sys.argv[1:] if argv is None else argv)
    bank = load_bank(kind)
    print(f"{kind.upper()} Assessment v{bank.version} ({len(bank.questions)} questions)")
    answers: dict[int, str] = {}
    for n, q in enumerate(bank.questions, 1):
        idx = ask(f"\n{n}/{len(bank.questions)}  {q.prompt}", [o.text for o in q.options])
        answers[q.id] = q.options[idx].tag
    try:
        res = score(bank, answers)
    except AssessmentError as e:
        print(f"Could not score assessment: {e}"); return 1
    headline = f"{res.type} - {res.name}" if kind == "mbti" else res.style
    print(f"\nResult: {headline}")
    os.makedirs("reports", exist_ok=True)
    ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    path = os.path.join("reports", f"report_{kind}_{ts}.html")
    export_report_html({"assessment_type": kind, "result": res.to_dict(), "completed_at": ts}, path)
    print(f"Done. Report saved to: {path}")
    return 0
if __name__ == "__main__": raise SystemExit(main())
