from forge_pkg.cli import main

main()
