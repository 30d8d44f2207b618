#!/usr/bin/env python3
"""
Cortex — Demo Launcher

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

One shared recurrent brain for a population of agents, with online learning
and generational evolution, served over a small HTTP API.

Usage:
    python demo.py                  # Start the API on port 8000
    python demo.py --port 3000      # Custom port
    python demo.py --headless 500   # No server: run 500 ticks and print stats
"""

import sys
import os
import argparse

# Ensure cortex is importable
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))


def preflight():
    """Verify all dependencies before starting."""
    missing = []
    try:
        import numpy
    except ImportError:
        missing.append('numpy')
    try:
        import pydantic
    except ImportError:
        missing.append('pydantic')
    try:
        import fastapi
    except ImportError:
        missing.append('fastapi')
    try:
        import uvicorn
    except ImportError:
        missing.append('uvicorn')

    if missing:
        print(f"\n  Missing dependencies: {', '.join(missing)}")
        print(f"  Install with: pip install {' '.join(missing)}")
        sys.exit(1)


def run_headless(ticks: int, population: int, generation_interval: int):
    from cortex.config import EngineConfig
    from cortex.sandbox import Sandbox

    sim = Sandbox(EngineConfig.from_env(), population_size=population)
    sim.spawn_population()
    print(f"  {population} agents, {sim.shared.weight_count} shared weights\n")

    for _ in range(ticks):
        stats = sim.step()
        if generation_interval and sim.tick % generation_interval == 0:
            event = sim.run_generation()
            print(f"  Tick {sim.tick:>6}: generation {event['generation']} "
                  f"(fitness {event['fitness']:+.4f})")
        elif sim.tick % 100 == 0:
            loss = stats['mean_loss']
            loss_txt = f"{loss:.4f}" if loss is not None else "  -   "
            print(f"  Tick {sim.tick:>6}: alive={stats['alive']:>4} "
                  f"reward={stats['mean_reward']:+.4f} loss={loss_txt}")
        sim.pop_events()

    state = sim.get_state()
    print(f"\n  Batches trained: {state['batches_trained']}")
    print(f"  Action mix: {state['action_mix']}")


def main():
    parser = argparse.ArgumentParser(description='Cortex — shared recurrent brain demo')
    parser.add_argument('--port', type=int, default=8000, help='Server port (default: 8000)')
    parser.add_argument('--host', type=str, default='0.0.0.0', help='Server host (default: 0.0.0.0)')
    parser.add_argument('--headless', type=int, default=0, metavar='TICKS',
                        help='Run TICKS ticks in-process instead of serving')
    parser.add_argument('--population', type=int, default=30, help='Headless population size')
    parser.add_argument('--generation-interval', type=int, default=250,
                        help='Headless ticks between generations (0 disables)')
    parser.add_argument('--log-level', type=str, default='INFO')
    args = parser.parse_args()

    preflight()

    from cortex.log import setup_logging
    setup_logging(args.log_level)

    if args.headless:
        run_headless(args.headless, args.population, args.generation_interval)
        return

    print(f"  API:      http://localhost:{args.port}")
    print(f"  API docs: http://localhost:{args.port}/docs")
    print("  Press Ctrl+C to stop.\n")

    import uvicorn
    from cortex.server import app

    uvicorn.run(app, host=args.host, port=args.port, log_level="warning")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\n  Stopped.\n")
        sys.exit(0)
