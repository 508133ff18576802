#!/usr/bin/env python3
"""
Example with custom flag names, usage text and a nested dataclass.

    python detailed_example.py -name-first=Ada -count=2 -wait=500ms
    python detailed_example.py -help
"""

import time
from dataclasses import dataclass, field
from datetime import timedelta

import structflag
from structflag import flag_field


@dataclass
class Name:
    first: str = flag_field("first", "first name", default="")
    last: str = flag_field("last", "last name", default="")


@dataclass
class Config:
    name: Name = field(default_factory=Name, metadata={"flag": "name"})
    count: int = flag_field("count", "how many times to say hello", default=3)
    wait: timedelta = flag_field(
        "wait", "how long to wait before greeting", default=timedelta(seconds=1)
    )


def main() -> None:
    config = Config()
    structflag.load(config)
    structflag.parse()

    time.sleep(config.wait.total_seconds())
    for _ in range(config.count):
        print("hello", config.name)


if __name__ == "__main__":
    main()
