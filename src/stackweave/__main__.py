import sys

from stackweave.cli.main import main

sys.exit(main())
