from facility_history.cli.app import main

main()
