import sys

from cmake_driver.cli import main

sys.exit(main())
