from rfleet.cli.app import main

main()
