from docs_sync.cli import main

raise SystemExit(main())
