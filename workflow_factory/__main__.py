import sys

from workflow_factory.main import main

if __name__ == "__main__":
    sys.exit(main())
