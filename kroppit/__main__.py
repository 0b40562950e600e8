from kroppit.app import main

main()
