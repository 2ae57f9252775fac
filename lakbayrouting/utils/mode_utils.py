from typing import Iterable

WALK_COLOR = '#71717a'
DEFAULT_RIDE_COLOR = '#F7A600'

# Modes searched when the caller does not choose any
DEFAULT_MODES = ('jeepney', 'bus', 'train', 'tricycle', 'uv', 'mrt', 'lrt')

# Drawing hints per normalised mode
MODE_COLORS = {
    'jeepney': '#F7A600',
    'bus': '#2563eb',
    'train': '#7c3aed',
    'tricycle': '#16a34a',
    'uv': '#0891b2',
    'other': DEFAULT_RIDE_COLOR,
}

MODE_ICONS = {
    'jeepney': 'jeepney',
    'bus': 'bus',
    'train': 'train',
    'tricycle': 'tricycle',
    'uv': 'van',
    'other': 'transit',
}


def normalize_mode(mode: str) -> str:
    """Map a free-form mode name onto the small known set"""
    mode = (mode or '').strip().lower()
    if 'jeep' in mode:
        return 'jeepney'
    elif 'bus' in mode or 'coach' in mode:
        return 'bus'
    elif mode in ('mrt', 'lrt', 'pnr') or 'train' in mode or 'rail' in mode \
            or mode.startswith(('mrt', 'lrt')):
        return 'train'
    elif 'tricycle' in mode or 'trike' in mode:
        return 'tricycle'
    elif 'uv' in mode or 'van' in mode:
        return 'uv'
    return 'other'


def mode_matches(mode: str, active_modes: Iterable[str]) -> bool:
    """True if any active token is a case-insensitive substring of the mode name"""
    name = (mode or '').lower()
    return any(token and token.lower() in name for token in active_modes)


def mode_color(mode: str) -> str:
    return MODE_COLORS[normalize_mode(mode)]


def mode_icon(mode: str) -> str:
    return MODE_ICONS[normalize_mode(mode)]
