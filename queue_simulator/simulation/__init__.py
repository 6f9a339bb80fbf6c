# Module de simulation
from .controller import SimulationController, SimulationState, Clock
from .driver import SimulationDriver
from .notifications import Notification, NotificationKind, format_sim_time
from .snapshot import Snapshot, ServerView, TickResult, FinalReport

__all__ = [
    'SimulationController',
    'SimulationState',
    'Clock',
    'SimulationDriver',
    'Notification',
    'NotificationKind',
    'format_sim_time',
    'Snapshot',
    'ServerView',
    'TickResult',
    'FinalReport',
]
