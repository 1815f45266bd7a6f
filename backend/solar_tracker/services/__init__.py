# Installation domain services
