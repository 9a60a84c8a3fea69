"""Provides the repair configuration."""

from dataclasses import dataclass, replace

DEFAULT_ITERATIONS = 2
# The default tolerance increment is the bounding diameter over this divisor
INCREMENT_DIVISOR = 10000.0


@dataclass(frozen=True)
class RepairConfig:
    """Which repair phases to run, one field per command line flag.

    Attributes
    ----------
    fix_all : bool
        Run every repair phase except ``reverse_all``.
    exact : bool
        Match edges with exactly equal endpoints.
    nearby : bool
        Match edges with nearly equal endpoints under an escalating tolerance.
    remove_unconnected : bool
        Remove facets without any matched edge.
    fill_holes : bool
        Triangulate boundary loops.
    normal_directions : bool
        Make the winding consistent across neighbors.
    normal_values : bool
        Recompute normals from the winding.
    reverse_all : bool
        Reverse every facet before fixing normal directions.
    verbose : bool
        Log the progress of every phase.
    tolerance : float | None
        The starting nearby tolerance, by default the shortest edge.
    increment : float | None
        The tolerance increment per iteration, by default the bounding diameter over
        10000.
    iterations : int
        The number of nearby iterations.
    """

    fix_all: bool = False
    exact: bool = False
    nearby: bool = False
    remove_unconnected: bool = False
    fill_holes: bool = False
    normal_directions: bool = False
    normal_values: bool = False
    reverse_all: bool = False
    verbose: bool = False
    tolerance: float | None = None
    increment: float | None = None
    iterations: int = DEFAULT_ITERATIONS

    def __post_init__(self) -> None:
        if self.tolerance is not None and self.tolerance < 0:
            msg = f"Tolerance must not be negative, got {self.tolerance}"
            raise ValueError(msg)
        if self.increment is not None and self.increment < 0:
            msg = f"Increment must not be negative, got {self.increment}"
            raise ValueError(msg)
        if self.iterations < 0:
            msg = f"Iterations must not be negative, got {self.iterations}"
            raise ValueError(msg)

    @property
    def tolerance_set(self) -> bool:
        """Whether the tolerance was given explicitly."""
        return self.tolerance is not None

    @property
    def increment_set(self) -> bool:
        """Whether the increment was given explicitly."""
        return self.increment is not None

    def resolved(self) -> "RepairConfig":
        """Apply the implications between flags.

        ``fix_all`` turns on every phase but ``reverse_all``. Filling holes prunes
        unconnected facets first. Every phase that needs a neighbor table turns on
        exact matching.

        Returns
        -------
        RepairConfig
            The configuration with every implied flag set.
        """
        config = self
        if config.fix_all:
            config = replace(
                config,
                nearby=True,
                remove_unconnected=True,
                fill_holes=True,
                normal_directions=True,
                normal_values=True,
            )
        if config.fill_holes:
            config = replace(config, remove_unconnected=True)
        if (
            config.nearby
            or config.remove_unconnected
            or config.fill_holes
            or config.normal_directions
        ):
            config = replace(config, exact=True)
        return config

    def nearby_parameters(
        self,
        shortest_edge: float,
        bounding_diameter: float,
    ) -> tuple[float, float]:
        """Get the nearby tolerance and increment, deriving unset values from the mesh.

        Parameters
        ----------
        shortest_edge : float
            The mesh's shortest edge length.
        bounding_diameter : float
            The diagonal of the mesh's bounding box.

        Returns
        -------
        tolerance : float
            The starting tolerance.
        increment : float
            The tolerance increment per iteration.
        """
        tolerance = self.tolerance if self.tolerance is not None else shortest_edge
        increment = (
            self.increment
            if self.increment is not None
            else bounding_diameter / INCREMENT_DIVISOR
        )
        return tolerance, increment
