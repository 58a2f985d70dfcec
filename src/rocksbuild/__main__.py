from rocksbuild.cli import main

raise SystemExit(main())
