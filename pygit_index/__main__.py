from pygit_index.cli import main

main()
