import sys

from amm_twap_analyzer.cli import main

sys.exit(main())
