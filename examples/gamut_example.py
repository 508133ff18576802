#!/usr/bin/env python3
"""
Example covering every supported field type.

    python gamut_example.py -boolean=false -uint64=7 -duration=1h30m
"""

from dataclasses import dataclass
from datetime import timedelta

import structflag
from structflag import Int64, Uint, Uint64


@dataclass
class Config:
    boolean: bool = True
    float64: float = 42.0
    integer: int = 42
    uint: Uint = Uint(42)
    int64: Int64 = Int64(42)
    uint64: Uint64 = Uint64(42)
    duration: timedelta = timedelta(minutes=1)
    string: str = "forty-two"


def main() -> None:
    config = Config()
    structflag.load(config)
    structflag.parse()

    print(config)


if __name__ == "__main__":
    main()
