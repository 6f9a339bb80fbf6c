# Briques du moteur: aléatoire, entités, pool, file et statistiques
from .variates import (
    UniformSource, NumpyUniformSource, SequenceUniformSource,
    VariateGenerator, lognormal_parameters
)
from .entities import Client, CompletedClient, Server
from .server_pool import ServerPool
from .wait_queue import WaitQueue
from .statistics import QueueMetrics, StatisticsAccumulator

__all__ = [
    'UniformSource',
    'NumpyUniformSource',
    'SequenceUniformSource',
    'VariateGenerator',
    'lognormal_parameters',
    'Client',
    'CompletedClient',
    'Server',
    'ServerPool',
    'WaitQueue',
    'QueueMetrics',
    'StatisticsAccumulator',
]
