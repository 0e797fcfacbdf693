import numpy as np


def map_scan_values(scan) -> dict:
    """
    Central place to map a decoded scan telegram to usable engineering values.

    Sample i lies at start_angle + i * angular_step degrees; ranges are already
    in metres. Cartesian coordinates use the scanner as origin, x along 0 deg.
    """
    if scan.start_angle is None or scan.angular_step is None:
        raise ValueError("Scan has no angular information (command type "
                         f"{scan.command_type!r})")

    distances = np.asarray(scan.distances, dtype=float)
    angles = scan.start_angle + scan.angular_step * np.arange(distances.size)
    radians = np.deg2rad(angles)

    return {
        "scan_counter": scan.scan_counter,
        "scan_frequency_hz": scan.scan_frequency,
        "angle_deg": angles,
        "distance_m": distances,
        "x_m": distances * np.cos(radians),
        "y_m": distances * np.sin(radians),
    }
