#!/usr/bin/env python3
"""Create a tiny synthetic knowledge base (JSON array of text/embedding/source) for local testing.

Usage:
    python tools/make_sample_knowledge.py --out knowledge-base.json --dim 384 --n 3

Vectors are random, so retrieval order is arbitrary; use it to exercise the wiring only.
"""
import argparse
import json
import numpy as np


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--out", default="knowledge-base.json", help="Output file")
    ap.add_argument("--dim", type=int, default=384, help="Embedding dimension (384 matches MiniLM)")
    ap.add_argument("--n", type=int, default=3, help="Number of sample records")
    args = ap.parse_args()

    rng = np.random.default_rng(42)
    X = rng.normal(size=(args.n, args.dim)).astype("float32")
    norms = np.linalg.norm(X, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    X = X / norms

    records = [{
        "text": f"This is a short sample chunk {i+1} about the portfolio owner.",
        "embedding": [float(x) for x in X[i]],
        "source": f"sample-doc.txt (chunk {i+1})",
    } for i in range(args.n)]

    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(records, f)

    print(f"Wrote {args.out} ({len(records)} records, dim={args.dim})")


if __name__ == "__main__":
    main()
