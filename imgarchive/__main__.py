from imgarchive.cli import main

raise SystemExit(main())
