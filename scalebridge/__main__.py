from scalebridge.main import main

main()
