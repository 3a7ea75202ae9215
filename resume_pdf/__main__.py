from resume_pdf.cli import main

main()
