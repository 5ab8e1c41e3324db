"""MMFitter maintains the derived data of the energy for fitting multilinear shape models.

Main submodules:
- :mod:`mmfitter.update` - selective refresh of the derived data
- :mod:`mmfitter.energy` - energy inputs, settings and derived data
- :mod:`mmfitter.linearize` - sparse-to-dense linearization kernels
- :mod:`mmfitter.model` - multilinear model reconstruction
- :mod:`mmfitter.mesh` - mesh container and normal estimation
"""

from __future__ import annotations

from .common import ModelData, initialize
from .energy import EnergyData, EnergyDerivedData, EnergySettings, Landmark
from .mesh import Mesh, estimate_vertex_normals
from .model import MultilinearModel
from .update import Change, EnergyDerivedDataUpdate

try:
    from ._version import version as __version__
except ImportError:
    __version__ = '0.0.0'

__all__ = [
    'Change',
    'EnergyData',
    'EnergyDerivedData',
    'EnergyDerivedDataUpdate',
    'EnergySettings',
    'Landmark',
    'Mesh',
    'ModelData',
    'MultilinearModel',
    'estimate_vertex_normals',
    'initialize',
    '__version__',
]
