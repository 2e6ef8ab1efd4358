"""Conversion of text into telegraph sounder or CW tone samples.

Samples are unsigned 8 bit, centred on 0x80.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

SILENCE = 0x80

_AMERICAN = {
    "A": ".-", "B": "-...", "C": ".. .", "D": "-..", "E": ".", "F": ".-.",
    "G": "--.", "H": "....", "I": "..", "J": "-.-.", "K": "-.-", "L": "L",
    "M": "--", "N": "-.", "O": ". .", "P": ".....", "Q": "..-.", "R": ". ..",
    "S": "...", "T": "-", "U": "..-", "V": "...-", "W": ".--", "X": ".-..",
    "Y": ".. ..", "Z": "... .",
    "0": "0", "1": ".--.", "2": "..-..", "3": "...-.", "4": "....-",
    "5": "---", "6": "......", "7": "--..", "8": "-....", "9": "-..-",
    ".": "..--..", ",": ".-.-", "?": "-..-.",
}

_INTERNATIONAL = {
    "A": ".-", "B": "-...", "C": "-.-.", "D": "-..", "E": ".", "F": "..-.",
    "G": "--.", "H": "....", "I": "..", "J": ".---", "K": "-.-", "L": ".-..",
    "M": "--", "N": "-.", "O": "---", "P": ".--.", "Q": "--.-", "R": ".-.",
    "S": "...", "T": "-", "U": "..-", "V": "...-", "W": ".--", "X": "-..-",
    "Y": "-.--", "Z": "--..",
    "0": "-----", "1": ".----", "2": "..---", "3": "...--", "4": "....-",
    "5": ".....", "6": "-....", "7": "--...", "8": "---..", "9": "----.",
    ".": ".-.-.-", ",": "--..--", "?": "..--..",
}


class CodeType(Enum):
    AMERICAN = "american"
    INTERNATIONAL = "international"


class SounderType(Enum):
    CW = "cw"
    CLICKCLACK = "clickclack"


def american_code(c: str) -> str | None:
    """American Morse for ``c``; None for a space, '' when unknown.

    ``L`` and ``0`` stand for the long dash and the extra long dash.
    """
    if c == " ":
        return None
    key = c.upper() if c.isascii() and c.isalpha() else c
    return _AMERICAN.get(key, "")


def international_code(c: str) -> str | None:
    """International Morse for ``c``; None for a space, '' when unknown.

    Only upper case letters are recognised.
    """
    if c == " ":
        return None
    return _INTERNATIONAL.get(c, "")


@dataclass
class MorseConverter:
    """Settings for turning text into sound, with lengths in dot units."""

    wpm: int = 18
    code_type: CodeType = CodeType.AMERICAN
    sounder_type: SounderType = SounderType.CLICKCLACK
    samples_per_second: int = 8000
    dash_len: float = 3
    d_space_len: float = 1
    m_space_len: float = 2
    c_space_len: float = 3
    w_space_len: float = 7
    l_len: float = 5.6
    zero_len: float = 8.9
    cw_freq: int = 500
    click: bytes | None = None
    clack: bytes | None = None

    @property
    def dot_samples(self) -> int:
        """Number of samples in one dot."""
        return int(self.samples_per_second * 1.2 / self.wpm)

    def code_for(self, c: str) -> str | None:
        if self.code_type is CodeType.AMERICAN:
            return american_code(c)
        return international_code(c)

    def length(self, c: str) -> float:
        """Relative length of a code element."""
        return {
            ".": 1,
            "-": self.dash_len,
            " ": self.m_space_len - self.d_space_len,
            "L": self.l_len,
            "0": self.zero_len,
        }.get(c, 0)

    def silence(self, n: int) -> bytes:
        return bytes([SILENCE]) * n

    def cw_sound(self, n: int) -> bytes:
        """``n`` samples of carrier tone with short ramps at both ends."""
        a = self.cw_freq * 2 * 3.14159 / self.samples_per_second
        out = bytearray(n)
        for i in range(n):
            x = math.sin(a * i)
            if i < 10:
                x *= 0.1 * i
            elif n - i < 10:
                x *= 0.1 * (n - i)
            out[i] = SILENCE + int(0x79 * x)
        return bytes(out)

    def sample_sound(self, n: int, sample: bytes) -> bytes:
        """``sample`` cut or padded with silence to ``n`` samples."""
        head = bytes(sample[:n])
        return head + self.silence(n - len(head))

    def click_sound(self, n: int) -> bytes:
        if self.sounder_type is SounderType.CW or self.click is None:
            return self.cw_sound(n)
        return self.sample_sound(n, self.click)

    def clack_sound(self, n: int) -> bytes:
        if self.sounder_type is SounderType.CW or self.clack is None:
            return self.silence(n)
        return self.sample_sound(n, self.clack)

    def make_sound(self, text: str) -> bytes:
        """Return the samples that sound ``text``."""
        n_dot = self.dot_samples
        parts: list[bytes] = []
        for i, ch in enumerate(text):
            code = self.code_for(ch)
            if code is None:
                parts.append(
                    self.silence(int(n_dot * (self.w_space_len - self.c_space_len - self.d_space_len)))
                )
                continue
            if i > 0:
                parts.append(self.silence(int(n_dot * (self.c_space_len - self.d_space_len))))
            for element in code:
                n = int(n_dot * self.length(element))
                if element == " ":
                    parts.append(self.silence(n))
                else:
                    parts.append(self.click_sound(n))
                    parts.append(self.clack_sound(int(n_dot * self.d_space_len)))
        return b"".join(parts)