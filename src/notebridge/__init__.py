# SPDX-License-Identifier: MIT

from notebridge.cleanup import register_cleanup
from notebridge.initialize import initialize
from notebridge.terminal.app import run


def main() -> None:
    initialize()
    register_cleanup()
    run()


if __name__ == "__main__":
    main()
