from sco2_cycle.cli.main import main

main()
