from bash_strict_check.cli import main

raise SystemExit(main())
