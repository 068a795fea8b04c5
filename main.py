from dotenv import load_dotenv
load_dotenv()  # Load .env file before anything else

import sys

from launchpad.cli import main

if __name__ == "__main__":
    sys.exit(main())
