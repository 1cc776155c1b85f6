#!/usr/bin/env python3
"""Thin wrapper to run HexOne administrative actions.

Parsing, configuration and execution live in the ``hexone_actions``
package; see ``hexone-actions --help``.
"""

from __future__ import annotations

import sys

from hexone_actions.cli import main


if __name__ == "__main__":
    sys.exit(main())
