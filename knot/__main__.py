from knot.main import main

main()
