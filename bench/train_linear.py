#!/usr/bin/env python
"""Benchmark: per-phase timing of the scalar-graph training loop.

Trains single Linear layers of growing width against a fixed linear target
and reports forward / backward / learn time per iteration plus the loss
trajectory. Every element op allocates a graph node, so cost grows with
in_features * out_features.
"""

import logging
import os
import sys
import time
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'py'))

import numpy as np

from nodegrad import Tensor
from nodegrad.nn import Linear

# ── Configuration ──────────────────────────────────────────────────────

CONFIGS = [
    {'name': 'tiny',   'dims': (2, 1),   'samples': 4,  'iters': 100},
    {'name': 'small',  'dims': (16, 4),  'samples': 8,  'iters': 30},
    {'name': 'medium', 'dims': (64, 10), 'samples': 8,  'iters': 5},
]

LR = 0.01


def run_config(cfg):
    n_in, n_out = cfg['dims']
    rng = np.random.default_rng(42)

    m = Linear(n_in, n_out, rng=rng)
    true_w = rng.standard_normal((n_out, n_in))
    xs = [rng.standard_normal((n_in, 1)) for _ in range(cfg['samples'])]
    samples = [(Tensor.from_numpy(x), Tensor.from_numpy(true_w @ x)) for x in xs]

    times = []
    for _ in range(cfg['iters']):
        t0 = time.perf_counter()
        m.zero_grad()
        loss = None
        for x, y in samples:
            term = (m(x) - y).square().sum()
            loss = term if loss is None else loss + term

        t1 = time.perf_counter()
        loss.backward()
        t2 = time.perf_counter()
        m.learn(LR)
        t3 = time.perf_counter()

        times.append({
            'forward': (t1 - t0) * 1000,
            'backward': (t2 - t1) * 1000,
            'learn': (t3 - t2) * 1000,
            'total': (t3 - t0) * 1000,
            'loss': loss.data,
        })
    return times


if __name__ == '__main__':
    logging.basicConfig(level=os.getenv('LOG_LEVEL', 'WARNING').upper(),
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    print(f"{'='*70}")
    print("nodegrad Linear training benchmark")
    print(f"{'='*70}\n")

    for cfg in CONFIGS:
        n_in, n_out = cfg['dims']
        print(f"--- {cfg['name']}: Linear({n_in} -> {n_out}), samples={cfg['samples']} ---")
        times = run_config(cfg)

        def avg(key):
            return sum(r[key] for r in times) / len(times)

        print(f"  Avg:        fwd={avg('forward'):8.1f}ms  bwd={avg('backward'):8.1f}ms  "
              f"learn={avg('learn'):8.1f}ms  total={avg('total'):8.1f}ms")
        print(f"  Loss:       {times[0]['loss']:.6f} -> {times[-1]['loss']:.6f}")
        print(f"  Throughput: {1000/avg('total'):.1f} iter/sec")
        print()
