from boorucore.cli import main

main()
