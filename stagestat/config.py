from typing import Any, Dict, List, Optional, TextIO, Tuple
from dataclasses import dataclass, field
from enum import Enum
import logging
import os
import sys

from git import Repo
from termcolor import colored

from stagestat.exceptions import ConfigError
from stagestat.store import DuplicatePolicy

MIN_COLUMN_WIDTH = 12

################################################################################
# Colour mode
################################################################################

class ColorMode(Enum):
    NEVER = 'never'
    ALWAYS = 'always'
    AUTO = 'auto'

    @classmethod
    def parse(cls, value: Any) -> 'ColorMode':
        """Interpret a git colour boolean. Plain truth values mean 'auto', as in git."""
        if isinstance(value, bool):
            return cls.AUTO if value else cls.NEVER
        if isinstance(value, int):
            return cls.AUTO if value != 0 else cls.NEVER

        text = str(value).strip().lower()
        match text:
            case 'never':                               return cls.NEVER
            case 'always':                              return cls.ALWAYS
            case 'auto':                                return cls.AUTO
            case '' | 'true' | 'yes' | 'on':            return cls.AUTO
            case 'false' | 'no' | 'off':                return cls.NEVER
        try:
            return cls.AUTO if int(text) != 0 else cls.NEVER
        except ValueError:
            raise ConfigError(f"Invalid colour mode: {value!r}")

    def enabled(self, stream: TextIO) -> bool:
        match self:
            case ColorMode.NEVER:  return False
            case ColorMode.ALWAYS: return True
        if os.environ.get('TERM') == 'dumb':
            return False
        isatty = getattr(stream, 'isatty', None)
        return bool(isatty and isatty())

################################################################################
# Colour specs
################################################################################

# git colour name -> (termcolor foreground, termcolor background)
_GIT_COLORS: Dict[str, Tuple[str, str]] = {
    'black':         ('black',         'on_black'),
    'red':           ('red',           'on_red'),
    'green':         ('green',         'on_green'),
    'yellow':        ('yellow',        'on_yellow'),
    'blue':          ('blue',          'on_blue'),
    'magenta':       ('magenta',       'on_magenta'),
    'cyan':          ('cyan',          'on_cyan'),
    'white':         ('light_grey',    'on_light_grey'),
    'brightblack':   ('dark_grey',     'on_dark_grey'),
    'brightred':     ('light_red',     'on_light_red'),
    'brightgreen':   ('light_green',   'on_light_green'),
    'brightyellow':  ('light_yellow',  'on_light_yellow'),
    'brightblue':    ('light_blue',    'on_light_blue'),
    'brightmagenta': ('light_magenta', 'on_light_magenta'),
    'brightcyan':    ('light_cyan',    'on_light_cyan'),
    'brightwhite':   ('white',         'on_white'),
}

_GIT_ATTRS: Dict[str, Optional[str]] = {
    'bold':      'bold',
    'dim':       'dark',
    'ul':        'underline',
    'underline': 'underline',
    'blink':     'blink',
    'reverse':   'reverse',
    'italic':    None,
    'strike':    None,
}


@dataclass(frozen=True)
class ColorSpec:
    color: Optional[str] = None
    on_color: Optional[str] = None
    attrs: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, value: str) -> 'ColorSpec':
        """Parse a git colour value such as 'bold red' or 'ul brightblue black'."""
        colors: List[Optional[str]] = []
        attrs: List[str] = []

        for word in str(value).lower().split():
            if word in ('normal', 'default'):
                colors.append(None)
            elif word in _GIT_COLORS:
                colors.append(word)
            elif word in _GIT_ATTRS:
                attr = _GIT_ATTRS[word]
                if attr is None:
                    logging.debug(f"Colour attribute '{word}' is not supported, ignoring it.")
                elif attr not in attrs:
                    attrs.append(attr)
            elif word.startswith('no') and word.removeprefix('no').removeprefix('-') in _GIT_ATTRS:
                continue
            elif word.isdigit() or word.startswith('#'):
                logging.warning(f"Colour '{word}' in '{value}' is not supported, ignoring it.")
                colors.append(None)
            else:
                raise ConfigError(f"Invalid colour value: {value!r}")

        if len(colors) > 2:
            raise ConfigError(f"Invalid colour value: {value!r} (more than two colours)")

        fg = _GIT_COLORS[colors[0]][0] if len(colors) > 0 and colors[0] else None
        bg = _GIT_COLORS[colors[1]][1] if len(colors) > 1 and colors[1] else None
        return cls(fg, bg, tuple(attrs))

    def apply(self, text: str) -> str:
        if self.color is None and self.on_color is None and not self.attrs:
            return text
        return colored(text, self.color, self.on_color, list(self.attrs) or None, force_color=True)

################################################################################
# Status config
################################################################################

DEFAULT_COLORS: Dict[str, ColorSpec] = {
    'header': ColorSpec(attrs=('bold',)),
    'error':  ColorSpec('red', attrs=('bold',)),
}


@dataclass
class StatusConfig:
    use_color: bool = False
    colors: Dict[str, ColorSpec] = field(default_factory=lambda: dict(DEFAULT_COLORS))
    column_width: int = MIN_COLUMN_WIDTH
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.LAST_WINS

    def __post_init__(self):
        if self.column_width < MIN_COLUMN_WIDTH:
            raise ConfigError(f"Column width must be at least {MIN_COLUMN_WIDTH}, got {self.column_width}")

    def paint(self, text: str, slot: str) -> str:
        if not self.use_color:
            return text
        spec = self.colors.get(slot)
        return spec.apply(text) if spec is not None else text


def _get(reader, section: str, option: str) -> Any:
    if not reader.has_option(section, option):
        return None
    return reader.get_value(section, option)


def load_config(repo: Repo,
                color: Optional[str] = None,
                column_width: Optional[int] = None,
                duplicate_policy: Optional[DuplicatePolicy] = None,
                stream: Optional[TextIO] = None) -> StatusConfig:
    """
    Build the report configuration from git config.

    `color.interactive` decides whether colour is used, falling back to
    `color.ui`; an explicit `color` argument overrides both. Slot colours come
    from `color.interactive.<slot>`. `stagestat.columns` and
    `stagestat.duplicates` supply the column width and the duplicate event
    policy unless given as arguments.
    """
    colors = dict(DEFAULT_COLORS)
    with repo.config_reader() as reader:
        raw_mode = _get(reader, 'color', 'interactive')
        if raw_mode is None:
            raw_mode = _get(reader, 'color', 'ui')

        for slot in colors:
            raw = _get(reader, 'color "interactive"', slot)
            if raw is not None:
                colors[slot] = ColorSpec.parse(raw)

        raw_columns = _get(reader, 'stagestat', 'columns')
        raw_duplicates = _get(reader, 'stagestat', 'duplicates')

    if column_width is None:
        column_width = MIN_COLUMN_WIDTH
        if raw_columns is not None:
            try:
                column_width = int(raw_columns)
            except ValueError:
                raise ConfigError(f"Invalid stagestat.columns: {raw_columns!r}")

    if duplicate_policy is None:
        duplicate_policy = DuplicatePolicy.LAST_WINS
        if raw_duplicates is not None:
            try:
                duplicate_policy = DuplicatePolicy(str(raw_duplicates).strip().lower())
            except ValueError:
                raise ConfigError(f"Invalid stagestat.duplicates: {raw_duplicates!r}")

    if color is not None:
        raw_mode = color
    mode = ColorMode.parse(raw_mode) if raw_mode is not None else ColorMode.AUTO
    logging.debug(f"Colour mode: {mode.value}")

    return StatusConfig(
        use_color=mode.enabled(stream or sys.stdout),
        colors=colors,
        column_width=column_width,
        duplicate_policy=duplicate_policy,
    )
