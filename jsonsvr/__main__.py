from jsonsvr.jsonsvr_cli import main

main()
