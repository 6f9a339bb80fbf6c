#!/usr/bin/env python3
"""
Point d'entrée pour lancer une simulation G/G/c sans interface.

Usage:
    python run_simulation.py --duration 3600 --servers 2 --seed 42

L'API HTTP est l'application ASGI queue_simulator.api.api:app.
"""

import argparse
import logging
import sys

from queue_simulator.config import SimulationConfig, SimulationDefaults
from queue_simulator.simulation import SimulationController, SimulationDriver


def main(argv=None):
    """Lance une exécution bornée et affiche le résumé final."""
    parser = argparse.ArgumentParser(description="Simulateur de file d'attente G/G/c")
    parser.add_argument("--duration", type=float, default=3600.0, help="Durée simulée (s)")
    parser.add_argument("--servers", type=int, default=SimulationDefaults.INITIAL_SERVERS)
    parser.add_argument("--speed", type=float, default=SimulationDefaults.SPEED)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--paced", action="store_true", help="Respecte le délai entre les lots")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args(argv)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG)
    elif args.verbose:
        logging.basicConfig(level=logging.INFO)

    config = SimulationConfig(initial_servers=args.servers, speed=args.speed, seed=args.seed)
    errors = config.validate()
    if errors:
        print("Configuration invalide:")
        for error in errors:
            print(f"   - {error}")
        return 1

    print(config.summary())
    controller = SimulationController(config)
    print(f"Durée estimée pour {config.estimate_clients} clients: "
          f"{controller.estimate_real_duration():.0f}s")

    driver = SimulationDriver(controller) if args.paced else SimulationDriver(controller, sleep=lambda _: None)
    driver.run_to_completion(args.duration)

    print("-" * 50)
    print(controller.final_report.summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
