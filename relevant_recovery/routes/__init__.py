"""
Public site blueprints. Registered explicitly from relevant_recovery.create_app:

  main       /, /about, /services, /contact, /community-signup
  events     /events, /events/<id>/register
  donations  /donation, /donation-success
  booking    /book-event/<id>, /booking-confirmation/<ticket_id>
"""
