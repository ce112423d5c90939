from hullsplit.cli import main

raise SystemExit(main())
