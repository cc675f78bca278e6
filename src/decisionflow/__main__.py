from decisionflow import main

main()
