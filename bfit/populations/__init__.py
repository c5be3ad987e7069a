from .capture import (
    t_cap,
    v_cap,
    w_cap,
    z_cap,
    x_cap,
    y_cap,
    u_cap,
    y2_kernel,
    y3_kernel,
)
from .evaluator import (
    SPECIES,
    SPECIES_GENERATIONS,
    t_tot,
    v_tot,
    w_tot,
    z_tot,
    x_tot,
    y_tot,
    u_tot,
    species_value,
    check_generation,
)

__all__ = [
    "t_cap",
    "v_cap",
    "w_cap",
    "z_cap",
    "x_cap",
    "y_cap",
    "u_cap",
    "y2_kernel",
    "y3_kernel",
    "SPECIES",
    "SPECIES_GENERATIONS",
    "t_tot",
    "v_tot",
    "w_tot",
    "z_tot",
    "x_tot",
    "y_tot",
    "u_tot",
    "species_value",
    "check_generation",
]
