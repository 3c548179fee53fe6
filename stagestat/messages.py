from typing import Optional, TextIO

from termcolor import colored

from stagestat.config import StatusConfig

###############################################################################
# Output prefixes
###############################################################################

CROSSMARK = ("✗", "red")


def _message(mark: tuple[str, str], config: Optional[StatusConfig], slot: Optional[str],
             stream: Optional[TextIO], *args):
    symbol, color = mark
    raw_prefix = f"[{symbol}]"
    use_color = config is not None and config.use_color
    prefix = '[' + colored(symbol, color, force_color=True) + ']' if use_color else raw_prefix

    msg = '\n'.join(str(arg) for arg in args)
    first = True
    for line in msg.split('\n'):
        if use_color and slot: line = config.paint(line, slot)
        if first: print(f"{prefix} {line}", file=stream)
        else:     print(f"{' ' * len(raw_prefix)} {line}", file=stream)
        first = False

# Use CROSSMARK and the error colour slot for errors
def error(*msg, config: Optional[StatusConfig] = None, stream: Optional[TextIO] = None):
    _message(CROSSMARK, config, 'error', stream, *msg)
