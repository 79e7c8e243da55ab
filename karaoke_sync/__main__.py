from karaoke_sync.cli import main

main()
