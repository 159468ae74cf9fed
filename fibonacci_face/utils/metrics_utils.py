from fibonacci_face import config

BAND_GOOD, BAND_WARN, BAND_BAD = "good", "warn", "bad"


def deviation_band(deviation):
    """Colour band for a deviation: ≤5 good, ≤15 warn, otherwise bad."""
    if deviation <= config.DEVIATION_GOOD_MAX:
        return BAND_GOOD
    if deviation <= config.DEVIATION_WARN_MAX:
        return BAND_WARN
    return BAND_BAD


def band_color(band):
    return config.UI_CONFIG['colors']['bands'][band]


def fit_to_container(natural_size, container_width):
    """
    Displayed size of an image drawn at full container width.

    Args:
        natural_size (tuple): (width, height) of the source image in pixels.
        container_width (float): Width available for the image.

    Returns:
        tuple: (width, height); (0, 0) when either size is unknown.
    """
    natural_w, natural_h = natural_size
    if natural_w <= 0 or natural_h <= 0 or container_width <= 0:
        return 0, 0
    scale = container_width / natural_w
    return float(container_width), natural_h * scale


def scale_overlay_lines(lines, width, height):
    """
    Map normalized overlay lines onto a displayed image.

    Args:
        lines (list[OverlayLine]): Lines with coordinates in [0, 1].
        width (float): Displayed image width in pixels.
        height (float): Displayed image height in pixels.

    Returns:
        list[dict]: One dict per line with pixel 'x1', 'y1', 'x2', 'y2' and 'label'.
    """
    return [
        {
            'x1': line.x1 * width, 'y1': line.y1 * height,
            'x2': line.x2 * width, 'y2': line.y2 * height,
            'label': line.label,
        }
        for line in lines
    ]
