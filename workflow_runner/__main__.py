from workflow_runner.cli import main

main()
