#!/usr/bin/env python3
"""
Minimal example: every field of the dataclass becomes a flag named after the field.

    python minimal_example.py -FirstName=Ada -LastName Lovelace
"""

from dataclasses import dataclass

import structflag


@dataclass
class Config:
    FirstName: str = ""
    LastName: str = ""


def main() -> None:
    config = Config()
    structflag.load(config)
    structflag.parse()

    print(config)


if __name__ == "__main__":
    main()
