from trello_sync.main import main

main()
