import json
import time
from pathlib import Path
from typing import Any, Dict, List
from collections import defaultdict

# Run with: PYTHONPATH=. python eval/run_eval.py
from policies.intents import classify_intent

PROMPTS_PATH = Path("eval/intent_prompts.jsonl")
REPORT_PATH = Path("eval/report.json")


def load_jsonl(path: Path) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            rows.append(json.loads(line))
    return rows


# ---------------------------
# Metrics helpers
# ---------------------------
def _safe_div(a: float, b: float) -> float:
    return a / b if b else 0.0


def compute_classification_metrics(y_true: List[str], y_pred: List[str]) -> Dict[str, Any]:
    labels = sorted(set(y_true) | set(y_pred))

    cm: Dict[str, Dict[str, int]] = {t: {p: 0 for p in labels} for t in labels}
    for t, p in zip(y_true, y_pred):
        cm[t][p] += 1

    per_label: Dict[str, Any] = {}
    for lab in labels:
        tp = cm[lab][lab]
        fp = sum(cm[t][lab] for t in labels if t != lab)
        fn = sum(cm[lab][p] for p in labels if p != lab)

        prec = _safe_div(tp, tp + fp)
        rec = _safe_div(tp, tp + fn)
        f1 = _safe_div(2 * prec * rec, prec + rec)

        support = sum(cm[lab].values())
        per_label[lab] = {
            "precision": round(prec, 4),
            "recall": round(rec, 4),
            "f1": round(f1, 4),
            "support": support,
        }

    acc = _safe_div(sum(cm[l][l] for l in labels), len(y_true))
    macro_f1 = _safe_div(sum(per_label[l]["f1"] for l in labels), len(labels))

    return {
        "labels": labels,
        "accuracy": round(acc, 4),
        "macro_f1": round(macro_f1, 4),
        "per_label": per_label,
        "confusion_matrix": cm,
    }


def _suite_name(row: Dict[str, Any]) -> str:
    s = (row.get("suite") or "core").strip().lower()
    return s if s else "core"


def evaluate_rows(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    total = len(rows)
    passed = 0
    failures: List[Dict[str, Any]] = []

    y_true: List[str] = []
    y_pred: List[str] = []

    for row in rows:
        match = classify_intent(row["message"])
        expected_intent = row.get("expected_intent")
        expected_confidence = row.get("expected_confidence")

        ok = True
        reasons: List[str] = []

        if expected_intent is not None:
            y_true.append(expected_intent)
            y_pred.append(match.intent)
            if match.intent != expected_intent:
                ok = False
                reasons.append(f"intent mismatch: expected={expected_intent} got={match.intent}")

        if expected_confidence is not None and match.confidence != expected_confidence:
            ok = False
            reasons.append(f"confidence mismatch: expected={expected_confidence} got={match.confidence}")

        if ok:
            passed += 1
        else:
            failures.append({
                "id": row["id"],
                "message": row["message"],
                "reasons": reasons,
                "got": {"intent": match.intent, "confidence": match.confidence},
            })

    pass_rate = _safe_div(passed * 100.0, total)

    metrics: Dict[str, Any] = {}
    if y_true:
        metrics["intent"] = compute_classification_metrics(y_true, y_pred)

    return {
        "total": total,
        "passed": passed,
        "failed": total - passed,
        "pass_rate": round(pass_rate, 4),
        "metrics": metrics,
        "failures": failures[:25],
    }


def main():
    prompts = load_jsonl(PROMPTS_PATH)
    run_id = str(int(time.time()))

    suites: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    for row in prompts:
        suites[_suite_name(row)].append(row)

    overall = evaluate_rows(prompts)

    print("\n=== Intent Eval Report (ALL) ===")
    print(f"Total: {overall['total']} | Passed: {overall['passed']} | Failed: {overall['failed']} | Pass rate: {overall['pass_rate']:.2f}%\n")

    if overall["failures"]:
        print("--- Top failures (up to 10) ---\n")
        for f in overall["failures"][:10]:
            print(f"[{f['id']}] {f['message']!r}")
            for r in f["reasons"]:
                print(f"  - {r}")
            print("")

    if "intent" in overall["metrics"]:
        m = overall["metrics"]["intent"]
        print(f"Intent accuracy: {m['accuracy']} | macro F1: {m['macro_f1']}\n")

    per_suite: Dict[str, Any] = {}
    for sname, rows in suites.items():
        per_suite[sname] = evaluate_rows(rows)

    for sname in sorted(per_suite.keys()):
        s = per_suite[sname]
        print(f"=== Suite: {sname} ===")
        print(f"Total: {s['total']} | Passed: {s['passed']} | Failed: {s['failed']} | Pass rate: {s['pass_rate']:.2f}%")
        if "intent" in s["metrics"]:
            print(f"  Intent acc: {s['metrics']['intent']['accuracy']} | macro F1: {s['metrics']['intent']['macro_f1']}")
        print("")

    REPORT_PATH.parent.mkdir(parents=True, exist_ok=True)
    REPORT_PATH.write_text(
        json.dumps({"run_id": run_id, "overall": overall, "suites": per_suite}, indent=2),
        encoding="utf-8",
    )
    print(f"Saved: {REPORT_PATH}")


if __name__ == "__main__":
    main()
