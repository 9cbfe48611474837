import sys

import seedmidi.cli


if __name__ == "__main__":
	sys.exit(seedmidi.cli.main())
