import sys

from mono_calib.cli import main

sys.exit(main())
