from bucketview.app import main

main()
