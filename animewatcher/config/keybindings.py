"""
Key binding definitions and matching.

Bindings are plain strings such as ``"j"``, ``"Enter"``, ``"Esc"``,
``"Ctrl+c"`` or ``"Up"`` so they can be written by hand in config.yaml.
"""

from dataclasses import dataclass, field, fields
from typing import Dict, Any, List, Optional


NAMED_KEYS = {
    'enter', 'esc', 'tab', 'backspace', 'up', 'down', 'left', 'right',
    'delete', 'home', 'end',
}

KEY_ALIASES = {
    'escape': 'esc',
    'return': 'enter',
    'space': ' ',
}


@dataclass(frozen=True)
class KeyEvent:
    """
    A single decoded key press.

    ``key`` is either a named key from NAMED_KEYS or exactly one
    printable character.
    """
    key: str
    ctrl: bool = False
    alt: bool = False

    @property
    def is_char(self) -> bool:
        return len(self.key) == 1

    @property
    def char(self) -> Optional[str]:
        """The printable character, or None for named or modified keys."""
        if self.is_char and not self.ctrl and not self.alt:
            return self.key
        return None


def parse_binding(binding: str) -> Optional[KeyEvent]:
    """
    Parse a binding string into the KeyEvent it matches.

    Args:
        binding: Binding text like ``"k"``, ``"Up"`` or ``"Ctrl+q"``

    Returns:
        KeyEvent, or None if the binding is not understood
    """
    text = binding.lower()
    ctrl = False
    if text.startswith('ctrl+') and len(text) > 5:
        ctrl = True
        text = text[5:]

    text = KEY_ALIASES.get(text, text)
    if text in NAMED_KEYS or len(text) == 1:
        return KeyEvent(key=text, ctrl=ctrl)
    return None


def binding_matches(binding: str, event: KeyEvent) -> bool:
    """
    Check if a binding string matches a key event.

    Ctrl must agree with the binding; alt never matches since no binding
    can request it.
    """
    if event.alt:
        return False
    expected = parse_binding(binding)
    if expected is None:
        return False
    return expected.ctrl == event.ctrl and expected.key == event.key


FORCE_QUIT_BINDINGS = ['Ctrl+c', 'Ctrl+q']


@dataclass
class Keybindings:
    """Custom keybindings configuration."""
    # Navigation
    up: List[str] = field(default_factory=lambda: ['k', 'Up'])
    down: List[str] = field(default_factory=lambda: ['j', 'Down'])
    select: List[str] = field(default_factory=lambda: ['Enter'])
    back: List[str] = field(default_factory=lambda: ['Backspace', 'Esc'])
    quit: List[str] = field(default_factory=lambda: ['q', 'Esc'])

    # Search
    search: List[str] = field(default_factory=lambda: ['s', '/'])

    # UI
    toggle_focus: List[str] = field(default_factory=lambda: ['Tab'])
    help: List[str] = field(default_factory=lambda: ['?'])

    # Episode list
    filter: List[str] = field(default_factory=lambda: ['f'])

    # Playback menu
    next: List[str] = field(default_factory=lambda: ['n'])
    previous: List[str] = field(default_factory=lambda: ['p'])
    replay: List[str] = field(default_factory=lambda: ['r'])
    episodes: List[str] = field(default_factory=lambda: ['e'])

    # Startup
    new_search: List[str] = field(default_factory=lambda: ['s', 'n'])

    def matches(self, bindings: List[str], event: KeyEvent) -> bool:
        """Check if any binding in the list matches the key event."""
        return any(binding_matches(b, event) for b in bindings)

    @classmethod
    def names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_config(cls, section: Optional[Dict[str, Any]]) -> 'Keybindings':
        """Build keybindings from the ``keybindings`` config section; unset actions keep defaults."""
        section = section or {}
        known = {name: list(section[name]) for name in cls.names() if name in section}
        return cls(**known)


def is_force_quit(event: KeyEvent) -> bool:
    return any(binding_matches(b, event) for b in FORCE_QUIT_BINDINGS)
