import sys

from fleet_monitor.cli import main

sys.exit(main())
