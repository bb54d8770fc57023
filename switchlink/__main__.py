from switchlink.bootstrap.entrypoints import main

if __name__ == "__main__":
    main()
