import sys

from Overlayer.PDF_main import main

sys.exit(main())
