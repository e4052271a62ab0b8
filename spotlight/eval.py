# spotlight/eval.py
from __future__ import annotations

import argparse
import os
import re
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Set

import pandas as pd

from .config import MAX_RESULTS
from .ranker import IncrementalRanker
from .utils.paths import is_hidden_path, path_basename

# ---------- path canonicalisation ----------

def _canon_path(path: str) -> str:
    """Collapse '//', trailing '/' and './' so equal paths compare equal."""
    if not isinstance(path, str) or not path.strip():
        return ""
    return os.path.normpath(os.path.expanduser(path.strip()))

# ---------- IO helpers ----------

def _read_any(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    df = pd.read_csv(path, encoding="utf-8", dtype=str, keep_default_na=False)
    cols = {c.lower(): c for c in df.columns}
    qcol, pcol = cols.get("query"), cols.get("expected_path")
    if not qcol or not pcol:
        raise ValueError(
            f"Expected columns 'Query' and 'Expected_path'. Found: {list(df.columns)}"
        )
    return df.rename(columns={qcol: "Query", pcol: "Expected_path"})

def read_listing(path: Path) -> List[str]:
    """One candidate path per line; blank lines dropped, order kept."""
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        return [line.rstrip("\r\n") for line in fh if line.strip()]

def _normalize_query_key(q: str) -> str:
    q = str(q or "").strip()
    q = re.sub(r"\s+", " ", q)
    return q

# ---------- gold sets ----------

def build_gold_sets(gold_file: Path) -> Dict[str, Set[str]]:
    """
    Collapse repeated query rows into:
        normalized_query -> {canonical expected paths}
    """
    df = _read_any(gold_file)
    gold: Dict[str, Set[str]] = {}
    for _, row in df.iterrows():
        q_key = _normalize_query_key(row["Query"])
        p = _canon_path(str(row["Expected_path"]))
        if q_key and p:
            gold.setdefault(q_key, set()).add(p)
    return gold

# ---------- predictions ----------

def producer_filter(query: str, listing: Iterable[str]) -> List[str]:
    """What the live path producer would hand over: basename contains query, nothing hidden."""
    q = query.lower()
    return [
        p for p in listing
        if not is_hidden_path(p) and q in path_basename(p).lower()
    ]

def rank_listing(query: str, listing: Sequence[str], k: int = MAX_RESULTS) -> List[str]:
    """Run one ranking session over the listing and return the final top-k paths."""
    ranker = IncrementalRanker(query, max_results=k)
    for p in producer_filter(query, listing):
        ranker.feed(p)
        if ranker.closed:
            break
    final = ranker.finish()
    snap = final if final is not None else ranker.snapshot(final=True)
    return snap.paths

def predict(queries: Iterable[str], listing: Sequence[str], k: int = MAX_RESULTS) -> Dict[str, List[str]]:
    return {q: rank_listing(q, listing, k) for q in queries}

# ---------- metrics ----------

def recall_at_k(gold: Set[str], preds: List[str], k: int) -> float:
    if not gold:
        return 0.0
    top = {_canon_path(p) for p in preds[:k]}
    hits = len(gold.intersection(top))
    return hits / float(len(gold))

def reciprocal_rank(gold: Set[str], preds: List[str]) -> float:
    for i, p in enumerate(preds, start=1):
        if _canon_path(p) in gold:
            return 1.0 / i
    return 0.0

def mean_recall_at_k(gold: Dict[str, Set[str]], preds: Dict[str, List[str]], k: int) -> float:
    vals = [recall_at_k(g, preds.get(q, []), k) for q, g in gold.items()]
    return sum(vals) / len(vals) if vals else 0.0

def mrr(gold: Dict[str, Set[str]], preds: Dict[str, List[str]]) -> float:
    vals = [reciprocal_rank(g, preds.get(q, [])) for q, g in gold.items()]
    return sum(vals) / len(vals) if vals else 0.0

def evaluate(
    preds: Dict[str, List[str]],
    gold: Dict[str, Set[str]],
    ks=(1, 5, 10),
) -> Dict[str, float]:
    """
    preds: normalized query -> ranked paths
    Returns {"recall@k": ..., "mrr": ...} averaged over gold queries.
    """
    scores: Dict[str, float] = {f"recall@{k}": mean_recall_at_k(gold, preds, k) for k in ks}
    scores["mrr"] = mrr(gold, preds)
    return scores

# ---------- prediction writer ----------

def write_predictions(preds: Dict[str, List[str]], path: Path) -> None:
    """
    Writes CSV with exact header: Query,Rank,Path
    """
    rows = []
    for q, paths in preds.items():
        for rank, p in enumerate(paths, start=1):
            if p:
                rows.append({"Query": q, "Rank": rank, "Path": p})
    df = pd.DataFrame(rows, columns=["Query", "Rank", "Path"])
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False, encoding="utf-8")

# ---------- CLI ----------

def main(argv=None):
    ap = argparse.ArgumentParser()
    ap.add_argument("--gold_csv", type=Path, required=True,
                    help="CSV with Query,Expected_path rows")
    ap.add_argument("--listing", type=Path, required=True,
                    help="Text file with one candidate path per line")
    ap.add_argument("--k", type=int, nargs="+", default=[1, 5, 10])
    ap.add_argument("--preds_out", type=Path, default=None,
                    help="Optional CSV to write ranked predictions to")
    args = ap.parse_args(argv)

    gold = build_gold_sets(args.gold_csv)
    listing = read_listing(args.listing)
    preds = predict(gold.keys(), listing, k=max(max(args.k), 1))

    if args.preds_out is not None:
        write_predictions(preds, args.preds_out)

    scores = evaluate(preds, gold, ks=args.k)
    for k in args.k:
        print(f"Recall@{k}: {scores[f'recall@{k}']:.4f}")
    print(f"MRR: {scores['mrr']:.4f}")

if __name__ == "__main__":
    main()
