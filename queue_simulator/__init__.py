# Simulateur de file d'attente G/G/c à événements discrets
# Moteur pas à pas: variables log-normales, pool de serveurs dynamique, métriques de Little

__version__ = "1.0.0"

# Exports principaux
from .config import SimulationConfig, SimulationDefaults
from .models import VariateGenerator, NumpyUniformSource, SequenceUniformSource, QueueMetrics
from .simulation import (
    SimulationController, SimulationState, SimulationDriver,
    Notification, NotificationKind, Snapshot, TickResult, FinalReport
)

__all__ = [
    # Configuration
    'SimulationConfig',
    'SimulationDefaults',
    # Modèles
    'VariateGenerator',
    'NumpyUniformSource',
    'SequenceUniformSource',
    'QueueMetrics',
    # Simulation
    'SimulationController',
    'SimulationState',
    'SimulationDriver',
    'Notification',
    'NotificationKind',
    'Snapshot',
    'TickResult',
    'FinalReport',
]
