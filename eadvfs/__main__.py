import sys

from eadvfs.main import main

sys.exit(main())
