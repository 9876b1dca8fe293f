"""
Force Layout: node positions from intrinsic forces
==================================================

Iterative, stateful simulation used by the concept graph view.
Positions emerge from force equilibrium:

    repulsion   every node pair, k_r / d² along the separating axis
    attraction  every edge, spring (d - rest_length) * k_a
    centering   every node, pulled toward the origin
    damping     velocity decays each step, and is capped

`step(state) -> state` is pure. Whatever drives it (render loop, timer,
a fixed number of iterations on the API) owns scheduling.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from .graph import ConceptGraph

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class LayoutParams:
    """Physics constants. Damping and the speed cap keep the layout stable."""
    repulsion: float = 5.0          # k_r
    repulsion_scale: float = 0.002  # velocity gain per unit repulsion
    attraction: float = 0.02        # k_a
    attraction_scale: float = 0.005
    rest_length: float = 6.0
    centering: float = 0.001
    damping: float = 0.95
    max_speed: float = 0.2
    min_distance: float = 0.1       # pairs closer than this skip repulsion
    spread: float = 15.0            # side of the initial placement cube
    dimensions: int = 3


# =============================================================================
# STATE
# =============================================================================

@dataclass(frozen=True)
class LayoutState:
    positions: np.ndarray           # (n, dimensions)
    velocities: np.ndarray          # (n, dimensions)
    iteration: int = 0
    displacement: float = float('inf')  # total |Δx| of the last step

    @property
    def node_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def mean_displacement(self) -> float:
        """Per-node displacement of the last step; comparable across graph sizes."""
        if not self.node_count:
            return 0.0
        return self.displacement / self.node_count


def initial_state(
    node_count: int,
    params: LayoutParams = LayoutParams(),
    rng: Optional[np.random.Generator] = None,
) -> LayoutState:
    """Random positions inside a cube centred on the origin, zero velocity."""
    rng = rng if rng is not None else np.random.default_rng()
    shape = (node_count, params.dimensions)
    positions = (rng.random(shape) - 0.5) * params.spread
    return LayoutState(positions=positions, velocities=np.zeros(shape))


def edge_index(graph: ConceptGraph) -> np.ndarray:
    """(m, 2) array of node indices, one row per edge."""
    index = graph.index()
    rows = [
        (index[e.source], index[e.target])
        for e in graph.edges
        if e.source in index and e.target in index
    ]
    if not rows:
        return np.zeros((0, 2), dtype=int)
    return np.array(rows, dtype=int)


# =============================================================================
# STEP
# =============================================================================

def _repulsion(positions: np.ndarray, params: LayoutParams) -> np.ndarray:
    diff = positions[:, None, :] - positions[None, :, :]
    dist = np.linalg.norm(diff, axis=-1)
    active = dist >= params.min_distance
    np.fill_diagonal(active, False)

    safe = np.where(active, dist, 1.0)
    magnitude = np.where(active, params.repulsion / safe ** 2, 0.0)
    force = diff / safe[..., None] * magnitude[..., None]
    return force.sum(axis=1) * params.repulsion_scale


def _attraction(positions: np.ndarray, edges: np.ndarray, params: LayoutParams) -> np.ndarray:
    delta_v = np.zeros_like(positions)
    if len(edges) == 0:
        return delta_v

    a, b = edges[:, 0], edges[:, 1]
    diff = positions[b] - positions[a]
    dist = np.linalg.norm(diff, axis=-1)
    safe = np.maximum(dist, params.min_distance)
    stretch = (dist - params.rest_length) * params.attraction * params.attraction_scale
    force = diff / safe[:, None] * stretch[:, None]

    np.add.at(delta_v, a, force)
    np.add.at(delta_v, b, -force)
    return delta_v


def step(state: LayoutState, edges: np.ndarray, params: LayoutParams = LayoutParams()) -> LayoutState:
    """
    Advance the simulation by one frame. Inputs are not mutated.

    A non-finite result (should not happen with sane params) is dropped:
    the previous positions are kept with velocity reset to zero.
    """
    positions = state.positions
    if state.node_count == 0:
        return LayoutState(positions, state.velocities, state.iteration + 1, 0.0)

    velocities = state.velocities.copy()
    velocities += _repulsion(positions, params)
    velocities += _attraction(positions, edges, params)
    velocities -= positions * params.centering
    velocities *= params.damping

    speed = np.linalg.norm(velocities, axis=-1)
    too_fast = speed > params.max_speed
    if np.any(too_fast):
        velocities[too_fast] *= (params.max_speed / speed[too_fast])[:, None]

    new_positions = positions + velocities
    if not np.all(np.isfinite(new_positions)):
        logger.debug(f"Layout step {state.iteration} produced non-finite positions; velocity reset")
        return LayoutState(positions, np.zeros_like(positions), state.iteration + 1, 0.0)

    displacement = float(np.linalg.norm(velocities, axis=-1).sum())
    return LayoutState(new_positions, velocities, state.iteration + 1, displacement)


# =============================================================================
# DRIVER
# =============================================================================

class ForceLayout:
    """
    Stateful wrapper holding the current frame for one graph.

    The view calls `advance()` per animation frame; tearing the view
    down simply drops the object.
    """

    def __init__(
        self,
        graph: ConceptGraph,
        params: LayoutParams = LayoutParams(),
        seed: Optional[int] = None,
    ):
        self.graph = graph
        self.params = params
        self.edges = edge_index(graph)
        self.state = initial_state(len(graph.nodes), params, np.random.default_rng(seed))

    def advance(self, steps: int = 1) -> LayoutState:
        for _ in range(steps):
            self.state = step(self.state, self.edges, self.params)
        return self.state

    def run_until_stable(self, tolerance: float = 1e-3, max_steps: int = 20000) -> Tuple[LayoutState, bool]:
        """
        Step until the mean per-node displacement drops below `tolerance`.

        Returns (state, converged).
        """
        while self.state.iteration < max_steps:
            self.state = step(self.state, self.edges, self.params)
            if self.state.mean_displacement < tolerance:
                return self.state, True
        return self.state, False

    def positions(self) -> Dict[str, Tuple[float, ...]]:
        return {
            node.name: tuple(float(x) for x in self.state.positions[i])
            for i, node in enumerate(self.graph.nodes)
        }


def sphere_positions(count: int, radius: float = 12.0) -> Sequence[Tuple[float, float, float]]:
    """
    Golden-angle spiral points on a sphere, for the tag cloud.

    Deterministic: the i-th tag always lands on the same spot.
    """
    if count <= 0:
        return []
    if count == 1:
        return [(0.0, radius, 0.0)]

    golden_angle = np.pi * (3 - np.sqrt(5))
    points = []
    for i in range(count):
        y = 1 - (i / (count - 1)) * 2
        ring = np.sqrt(max(0.0, 1 - y * y))
        theta = golden_angle * i
        points.append((
            float(np.cos(theta) * ring * radius),
            float(y * radius),
            float(np.sin(theta) * ring * radius),
        ))
    return points
