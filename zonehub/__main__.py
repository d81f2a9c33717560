from zonehub.entrypoint import main

main()
