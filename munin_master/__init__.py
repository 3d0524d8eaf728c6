"""
Munin Master - Cycle de mise à jour de la configuration des nœuds Munin

Ce module principal fournit le cycle de mise à jour qui interroge
périodiquement les nœuds Munin, rassemble la configuration de leurs
services et la persiste de façon atomique dans le datafile.
"""

__version__ = "1.0.0"

# Imports principaux pour faciliter l'utilisation
from .core.config import MasterConfig
from .core.logger import MasterLogger
from .core.update import Update

__all__ = ['MasterConfig', 'MasterLogger', 'Update']
