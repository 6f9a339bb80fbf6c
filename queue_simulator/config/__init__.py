"""
Module de configuration du simulateur.

Ce module exporte les classes de configuration.
"""

from .simulation_config import SimulationConfig, SimulationDefaults, DEFAULT_SIMULATION_CONFIG

__all__ = [
    'SimulationConfig',
    'SimulationDefaults',
    'DEFAULT_SIMULATION_CONFIG'
]
