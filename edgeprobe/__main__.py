import sys

from edgeprobe.main import main

sys.exit(main())
