"""Management CLI for floor setup.

Usage:
    python -m stemtrack.cli provision-lines [N]   # Create lines 1..N (default from settings)
    python -m stemtrack.cli seed-demo             # Load the demo data set
"""

import logging
import sys

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from stemtrack.config import settings
from stemtrack.services.provisioning import provision_lines, seed_demo


def _session() -> Session:
    engine = create_engine(settings.database_url_sync)
    return Session(engine)


def run_provision_lines(count: int):
    with _session() as session:
        created = provision_lines(session, count)
        session.commit()
    print(f"  {created} line(s) created, {count} provisioned")


def run_seed_demo():
    with _session() as session:
        seed_demo(session, settings.production_line_count)
        session.commit()
    print("  Demo data loaded")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "provision-lines":
        arg = sys.argv[2] if len(sys.argv) > 2 else ""
        if arg and not arg.isdigit():
            print(f"Invalid line count: {arg}")
            sys.exit(2)
        run_provision_lines(int(arg) if arg else settings.production_line_count)
    elif cmd == "seed-demo":
        run_seed_demo()
    else:
        print("Usage: python -m stemtrack.cli [provision-lines [N]|seed-demo]")
