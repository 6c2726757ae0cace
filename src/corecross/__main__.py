from corecross.cli import main

raise SystemExit(main())
