"""Console entry-point for the greetbot webhook receiver.

Run with:

.. code-block:: bash

    python -m greetbot --port 3000

This delegates to `greetbot.entry.main()`.
"""

import sys

from greetbot.entry import main

if __name__ == "__main__":
    sys.exit(main())
