from cake_sync.sync_cron import main

main()
