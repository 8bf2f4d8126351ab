from dualstack_greeter.cli import main

raise SystemExit(main())
