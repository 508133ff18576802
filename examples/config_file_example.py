#!/usr/bin/env python3
"""
Example demonstrating config file override functionality.

Values are resolved in this order:
1. Command-line arguments (highest priority)
2. Config file values
3. Dataclass defaults (lowest priority)

    python config_file_example.py -config settings.yaml -db-port 6543

where settings.yaml might contain:

    db:
      host: db.internal
      port: 5432
    workers: 8
"""

import logging
from dataclasses import dataclass, field

from structflag import FlagSet, load_to


@dataclass
class Database:
    host: str = field(default="localhost", metadata={"flag": "host", "usage": "Database host"})
    port: int = field(default=5432, metadata={"flag": "port", "usage": "Database port"})


@dataclass
class ServiceConfig:
    db: Database = field(default_factory=Database, metadata={"flag": "db"})
    workers: int = field(default=4, metadata={"flag": "workers", "usage": "Worker count"})
    debug: bool = field(default=False, metadata={"flag": "debug", "usage": "Log flag activity"})


if __name__ == "__main__":
    config = ServiceConfig()
    flags = FlagSet("config_file_example", config_flag="config")
    load_to(flags, "", config)
    flags.parse()

    if config.debug:
        logging.basicConfig(level=logging.DEBUG)

    print("Results:")
    print("-" * 20)
    print(f"db.host: {config.db.host}")
    print(f"db.port: {config.db.port}")
    print(f"workers: {config.workers}")
    print("Set explicitly:", ", ".join(f.name for f in flags.changed_flags()) or "nothing")
