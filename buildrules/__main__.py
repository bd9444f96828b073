from buildrules.cli import main

main()
