"""
Keyboard listener for the interactive session

Puts the terminal into a raw-ish input mode and decodes key presses into
KeyEvents. Polling is done on demand by the session loop, so keys pressed
while an action is running simply wait in the terminal's input queue.
"""

import logging
import os
import select
import sys
import termios
from collections import deque
from typing import Deque, List, Optional

from animewatcher.config.keybindings import KeyEvent

logger = logging.getLogger(__name__)

ESC = 0x1b
READ_SIZE = 1024

# Final byte of a CSI / SS3 sequence -> named key
CSI_FINAL_KEYS = {
    'A': 'up',
    'B': 'down',
    'C': 'right',
    'D': 'left',
    'H': 'home',
    'F': 'end',
}

# Numeric CSI sequences ending in '~', e.g. ESC [3~
CSI_TILDE_KEYS = {
    '1': 'home',
    '3': 'delete',
    '4': 'end',
    '7': 'home',
    '8': 'end',
}


def decode_keys(data: bytes) -> List[KeyEvent]:
    """
    Decode raw terminal input into key events.

    Args:
        data: Bytes read from the terminal in one go

    Returns:
        Key events in input order; undecodable bytes are dropped

    Example:
        >>> decode_keys(b'j\\x1b[A\\r')
        [KeyEvent(key='j'), KeyEvent(key='up'), KeyEvent(key='enter')]
    """
    events = []
    i = 0
    while i < len(data):
        b = data[i]

        if b == ESC:
            event, i = _decode_escape(data, i)
            if event is not None:
                events.append(event)
            continue

        if b in (0x0d, 0x0a):
            events.append(KeyEvent('enter'))
        elif b in (0x7f, 0x08):
            events.append(KeyEvent('backspace'))
        elif b == 0x09:
            events.append(KeyEvent('tab'))
        elif 1 <= b <= 26:
            events.append(KeyEvent(chr(b + 96), ctrl=True))
        elif b >= 0x20:
            char, length = _decode_utf8(data, i)
            if char is not None:
                events.append(KeyEvent(char))
            i += length
            continue

        i += 1
    return events


def _decode_escape(data: bytes, i: int):
    """Decode an escape sequence starting at ``data[i]``; returns (event, next index)."""
    if i + 1 >= len(data):
        return KeyEvent('esc'), i + 1

    nxt = chr(data[i + 1])
    if nxt in ('[', 'O') and i + 2 < len(data):
        # Parameters run until a final byte in 0x40-0x7e
        j = i + 2
        while j < len(data) and not 0x40 <= data[j] <= 0x7e:
            j += 1
        if j >= len(data):
            return None, len(data)
        params = data[i + 2:j].decode('ascii', errors='ignore')
        final = chr(data[j])
        if final == '~':
            key = CSI_TILDE_KEYS.get(params.split(';')[0])
        else:
            key = CSI_FINAL_KEYS.get(final)
        return (KeyEvent(key) if key else None), j + 1

    if data[i + 1] == ESC:
        return KeyEvent('esc'), i + 1

    char, length = _decode_utf8(data, i + 1)
    if char is None or not char.isprintable():
        return KeyEvent('esc'), i + 1
    return KeyEvent(char, alt=True), i + 1 + length


def _decode_utf8(data: bytes, i: int):
    """Decode one UTF-8 character at ``data[i]``; returns (char or None, byte length)."""
    lead = data[i]
    if lead < 0x80:
        length = 1
    elif lead >> 5 == 0b110:
        length = 2
    elif lead >> 4 == 0b1110:
        length = 3
    elif lead >> 3 == 0b11110:
        length = 4
    else:
        return None, 1

    try:
        return data[i:i + length].decode('utf-8'), length
    except UnicodeDecodeError:
        return None, 1


class KeyboardListener:
    """
    Polling keyboard listener for the session loop

    Features:
    - Non-canonical, no-echo input with signals and flow control disabled,
      so ctrl+c and ctrl+q arrive as ordinary key presses
    - Escape sequence decoding for arrows and navigation keys
    - Events decoded from one read are queued and handed out one per poll
    - Graceful failure if stdin is not a terminal

    Example:
        listener = KeyboardListener()
        if not listener.start():
            sys.exit(1)
        try:
            event = listener.poll(0.1)
        finally:
            listener.stop()
    """

    def __init__(self, stream=None):
        """
        Initialize keyboard listener

        Args:
            stream: Input stream to read from (defaults to sys.stdin)
        """
        self.stream = stream if stream is not None else sys.stdin
        self._pending: Deque[KeyEvent] = deque()
        self._old_terminal_settings = None
        self._fd: Optional[int] = None

    def start(self) -> bool:
        """
        Switch the terminal into key-by-key input mode

        Returns:
            True if the terminal is ready, False if stdin is not a terminal
        """
        if not self.stream.isatty():
            logger.warning("stdin is not a TTY - keyboard input unavailable")
            return False

        try:
            self._fd = self.stream.fileno()
            self._old_terminal_settings = termios.tcgetattr(self._fd)

            attrs = termios.tcgetattr(self._fd)
            attrs[0] &= ~(termios.IXON | termios.ICRNL)
            attrs[3] &= ~(termios.ICANON | termios.ECHO | termios.ISIG | termios.IEXTEN)
            attrs[6][termios.VMIN] = 1
            attrs[6][termios.VTIME] = 0
            termios.tcsetattr(self._fd, termios.TCSADRAIN, attrs)
        except (termios.error, OSError) as e:
            logger.warning(f"Could not configure terminal: {e}")
            self._old_terminal_settings = None
            return False

        logger.debug("Keyboard listener started")
        return True

    def poll(self, timeout: float) -> Optional[KeyEvent]:
        """
        Return the next key press, waiting at most ``timeout`` seconds

        Returns:
            KeyEvent, or None if nothing was pressed
        """
        if self._pending:
            return self._pending.popleft()
        if self._fd is None:
            return None

        ready, _, _ = select.select([self._fd], [], [], timeout)
        if ready:
            data = os.read(self._fd, READ_SIZE)
            self._pending.extend(decode_keys(data))

        if self._pending:
            return self._pending.popleft()
        return None

    def stop(self) -> None:
        """Restore the original terminal settings"""
        if self._old_terminal_settings is not None and self._fd is not None:
            try:
                termios.tcsetattr(self._fd, termios.TCSADRAIN, self._old_terminal_settings)
            except termios.error as e:
                logger.error(f"Error restoring terminal settings: {e}")
            self._old_terminal_settings = None
            logger.debug("Keyboard listener stopped")
