from yup.cli import main

main()
