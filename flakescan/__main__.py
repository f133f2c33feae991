from flakescan.cli import main

raise SystemExit(main())
