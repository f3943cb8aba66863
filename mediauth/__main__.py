from mediauth.server import main

main()
