from __future__ import annotations
import os
from assess_core.question_bank import KINDS, MBTI_DIMENSIONS, TKI_MODES, load_bank

# Configurable targets; defaults match the shipped banks
TARGETS = {
    "mbti_per_dimension": int(os.getenv("TARGET_MBTI_PER_DIM", 16)),
    "tki_situations": int(os.getenv("TARGET_TKI_SITUATIONS", 35)),
}

def main():
    print(f"Targets: ≥{TARGETS['mbti_per_dimension']} MBTI questions per dimension, "
          f"≥{TARGETS['tki_situations']} TKI situations.\n")
    for kind in KINDS:
        bank = load_bank(kind)
        print(f"{kind.upper()} v{bank.version}: {len(bank.questions)} questions")
        if kind == "mbti":
            for dim in MBTI_DIMENSIONS:
                n = sum(1 for q in bank.questions if q.dimension == dim)
                need = max(0, TARGETS["mbti_per_dimension"] - n)
                print(f"  {dim}: {n:3d}" + (f"  → Add {need}" if need else "  ✓"))
        else:
            for mode in TKI_MODES:
                n = sum(1 for q in bank.questions for o in q.options if o.tag == mode)
                print(f"  {mode:<14} offered in {n:3d} situations")
            need = max(0, TARGETS["tki_situations"] - len(bank.questions))
            print(f"  → Add {need} situations\n" if need else "  ✓ Meets targets\n")

if __name__ == "__main__":
    main()
